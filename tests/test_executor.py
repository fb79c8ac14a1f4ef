"""
Tests for the tool executor against the in-memory store.
"""

import asyncio

import pytest
from unittest.mock import patch

from pace_dashboard.agents.executor import ToolExecutor, kb_key, append_separator
from pace_dashboard.core.config import (
    KB_BUCKET,
    SKILLS_BUCKET,
    SKILLS_INDEX_KEY,
    CHANGE_LOG_BUCKET,
    PENDING_CHANGES_BUCKET,
)
from pace_dashboard.store.types import StoreError

from conftest import PROCESS_ID


def run(executor, tool_name, args=None, default_process_id=None):
    return asyncio.run(executor.execute(tool_name, args, default_process_id))


def change_log_actions(store):
    return sorted(store.download_json(CHANGE_LOG_BUCKET, obj.name)["action"]
                  for obj in store.list(CHANGE_LOG_BUCKET))


class TestDispatch:

    def test_unknown_tool(self, executor):
        assert run(executor, "drop_tables", {}) == {"error": "Unknown tool: drop_tables"}

    def test_missing_required_argument(self, executor):
        result = run(executor, "update_knowledge_base", {})
        assert result == {"error": "Missing required argument 'content' for tool 'update_knowledge_base'"}

    def test_non_dict_arguments_are_treated_as_empty(self, executor):
        result = run(executor, "read_knowledge_base", None)
        assert result["process_id"] == PROCESS_ID

    def test_handler_exception_becomes_error_payload(self, executor, seeded_store):
        with patch.object(seeded_store, "upload", side_effect=StoreError("disk full")):
            result = run(executor, "update_knowledge_base", {"content": "x"})
        assert result == {"error": "disk full"}

    def test_process_id_resolution_order(self, executor):
        assert executor.resolve_process_id({"process_id": "explicit"}, "current") == "explicit"
        assert executor.resolve_process_id({}, "current") == "current"
        assert executor.resolve_process_id({}, None) == PROCESS_ID

    def test_non_object_result_becomes_error(self, executor):
        executor.handlers["list_skills"] = lambda args, process_id: ["not", "an", "object"]
        assert run(executor, "list_skills", {}) == {"error": "Tool list_skills returned an invalid result"}

    def test_tool_calls_logged_with_mutating_flag(self, executor):
        with patch("pace_dashboard.agents.executor.logger") as mock_logger:
            run(executor, "read_knowledge_base", {})
            run(executor, "append_to_knowledge_base", {"content": "More notes."})
        flags = [c.kwargs["mutating"] for c in mock_logger.log_tool_call.call_args_list]
        assert flags == [False, True]


class TestKnowledgeBaseTools:

    def test_read_default_process(self, executor):
        result = run(executor, "read_knowledge_base", {})
        assert result == {"content": "# Invoice Processing\n\nInitial notes.", "process_id": PROCESS_ID}

    def test_read_missing_kb(self, executor):
        result = run(executor, "read_knowledge_base", {"process_id": "unknown"})
        assert result["error"].startswith("KB not found")

    def test_read_uses_current_process(self, executor, seeded_store):
        seeded_store.upload_text(KB_BUCKET, kb_key("p2"), "Other KB", overwrite=True)
        result = run(executor, "read_knowledge_base", {}, default_process_id="p2")
        assert result["content"] == "Other KB"

    def test_update_then_read(self, executor, seeded_store):
        result = run(executor, "update_knowledge_base", {"content": "# Rewritten"})
        assert result == {"success": True, "action": "replaced", "process_id": PROCESS_ID}
        assert run(executor, "read_knowledge_base", {})["content"] == "# Rewritten"
        assert change_log_actions(seeded_store) == ["updated_kb"]

    def test_append_with_section(self, executor):
        run(executor, "append_to_knowledge_base", {"content": "Net 30 terms.", "section": "Payment"})
        content = run(executor, "read_knowledge_base", {})["content"]
        assert content == "# Invoice Processing\n\nInitial notes.\n\n## Payment\n\nNet 30 terms."

    def test_append_order_is_preserved(self, executor):
        run(executor, "append_to_knowledge_base", {"content": "first"})
        run(executor, "append_to_knowledge_base", {"content": "second"})
        content = run(executor, "read_knowledge_base", {})["content"]
        assert content.endswith("\n\nfirst\n\nsecond")

    def test_append_creates_missing_kb(self, executor, seeded_store):
        result = run(executor, "append_to_knowledge_base", {"content": "Hello", "process_id": "new"})
        assert result["action"] == "appended"
        assert seeded_store.download_text(KB_BUCKET, kb_key("new")) == "\n\nHello"
        assert change_log_actions(seeded_store) == ["appended_kb"]

    def test_append_separator(self):
        assert append_separator(None) == "\n\n"
        assert append_separator("") == "\n\n"
        assert append_separator("Notes") == "\n\n## Notes\n\n"


class TestSkillTools:

    def test_list_skills(self, executor):
        result = run(executor, "list_skills", {})
        assert result["count"] == 2
        assert result["skills"][0] == {
            "name": "invoice-extraction",
            "title": "Invoice Extraction",
            "description": "Extracts invoice fields.",
            "category": "customer-ops",
            "enabled": True,
        }

    def test_list_skills_by_category(self, executor):
        result = run(executor, "list_skills", {"category": "analytics"})
        assert [s["name"] for s in result["skills"]] == ["weekly-report"]

    def test_list_skills_without_index(self, store):
        result = run(ToolExecutor(store, PROCESS_ID), "list_skills", {})
        assert "error" in result

    def test_get_skill_details(self, executor):
        result = run(executor, "get_skill_details", {"skill_name": "invoice-extraction"})
        assert result["triggers"] == ["extract invoice"]

    def test_get_missing_skill(self, executor):
        result = run(executor, "get_skill_details", {"skill_name": "ghost"})
        assert result == {"error": "Skill not found: ghost"}

    def test_index_is_not_a_skill(self, executor):
        result = run(executor, "get_skill_details", {"skill_name": "index"})
        assert result == {"error": "Skill not found: index"}

    def test_update_skill_cannot_overwrite_index(self, executor, seeded_store):
        before = seeded_store.download_json(SKILLS_BUCKET, SKILLS_INDEX_KEY)
        result = run(executor, "update_skill", {"skill_name": "index", "updates": {"enabled": False}})
        assert result == {"error": "Skill not found: index"}
        assert seeded_store.download_json(SKILLS_BUCKET, SKILLS_INDEX_KEY) == before

    def test_update_skill_writes_record_and_index(self, executor, seeded_store):
        result = run(executor, "update_skill", {
            "skill_name": "weekly-report",
            "updates": {"enabled": True, "triggers": ["weekly summary"]},
        })
        assert result == {"success": True, "skill_name": "weekly-report",
                          "updated_fields": ["enabled", "triggers"]}

        record = seeded_store.download_json(SKILLS_BUCKET, "weekly-report.json")
        assert record["enabled"] is True
        assert record["triggers"] == ["weekly summary"]
        assert record["title"] == "Weekly Report"

        index = seeded_store.download_json(SKILLS_BUCKET, SKILLS_INDEX_KEY)
        indexed = next(s for s in index if s["name"] == "weekly-report")
        assert indexed["enabled"] is True
        assert indexed["triggers"] == ["weekly summary"]
        assert index[0]["name"] == "invoice-extraction"

        assert change_log_actions(seeded_store) == ["updated_skill"]

    def test_update_skill_cannot_rename(self, executor, seeded_store):
        run(executor, "update_skill", {"skill_name": "weekly-report", "updates": {"name": "renamed"}})
        assert seeded_store.download_json(SKILLS_BUCKET, "weekly-report.json")["name"] == "weekly-report"

    def test_update_skill_requires_object(self, executor):
        result = run(executor, "update_skill", {"skill_name": "weekly-report", "updates": "enable it"})
        assert result == {"error": "updates must be an object"}

    def test_update_missing_skill(self, executor, seeded_store):
        result = run(executor, "update_skill", {"skill_name": "ghost", "updates": {"enabled": False}})
        assert result == {"error": "Skill not found: ghost"}
        assert seeded_store.list(CHANGE_LOG_BUCKET) == []

    def test_update_skill_without_index_still_succeeds(self, store):
        store.upload_json(SKILLS_BUCKET, "solo.json", {"name": "solo", "enabled": True}, overwrite=True)
        result = run(ToolExecutor(store, PROCESS_ID), "update_skill",
                     {"skill_name": "solo", "updates": {"enabled": False}})
        assert result["success"] is True
        assert store.download_json(SKILLS_BUCKET, "solo.json")["enabled"] is False


class TestAuditTools:

    def test_log_change(self, executor, seeded_store):
        result = run(executor, "log_change", {"action": "modified_skill", "entity_type": "skill",
                                              "entity_name": "reporting skill"})
        assert result["success"] is True
        entries = run(executor, "get_change_log", {})["entries"]
        assert len(entries) == 1
        assert entries[0]["id"] == result["id"]
        assert entries[0]["performed_by"] == "dashboard-chat"
        assert entries[0]["details"] == ""

    def test_log_change_requires_entity_type(self, executor):
        result = run(executor, "log_change", {"action": "x"})
        assert result["error"] == "Missing required argument 'entity_type' for tool 'log_change'"

    def test_queue_pending_change_defaults(self, executor, seeded_store):
        result = run(executor, "queue_pending_change", {"change_type": "feature_request",
                                                        "description": "Add CSV export"})
        assert result["success"] is True
        assert result["status"] == "pending"

        stored = seeded_store.download_json(PENDING_CHANGES_BUCKET, f"{result['id']}.json")
        assert stored["priority"] == "medium"
        assert stored["status"] == "pending"
        assert stored["requested_by"] == "dashboard-chat"
        assert stored["details"] == ""
        assert change_log_actions(seeded_store) == ["queued_change"]

    def test_queue_pending_change_invalid_priority(self, executor, seeded_store):
        result = run(executor, "queue_pending_change", {"change_type": "deployment", "description": "x",
                                                        "priority": "urgent"})
        assert "priority" in result["error"]
        assert seeded_store.list(PENDING_CHANGES_BUCKET) == []

    def test_get_change_log_newest_first_with_limit(self, executor, seeded_store):
        keys = ["2026-01-01T00-00-00-000Z_aaaaaaaa.json",
                "2026-01-03T00-00-00-000Z_cccccccc.json",
                "2026-01-02T00-00-00-000Z_bbbbbbbb.json"]
        for key in keys:
            seeded_store.upload_json(CHANGE_LOG_BUCKET, key, {"id": key[:10]})

        result = run(executor, "get_change_log", {"limit": 2})
        assert [e["id"] for e in result["entries"]] == ["2026-01-03", "2026-01-02"]
        assert result["count"] == 2

    def test_get_change_log_bad_limit_uses_default(self, executor, seeded_store):
        for i in range(12):
            seeded_store.upload_json(CHANGE_LOG_BUCKET, f"2026-01-{i + 1:02d}T00-00-00-000Z_x.json", {"n": i})
        assert run(executor, "get_change_log", {"limit": "lots"})["count"] == 10
        assert run(executor, "get_change_log", {"limit": 0})["count"] == 10

    def test_get_pending_changes_filter(self, executor, seeded_store):
        run(executor, "queue_pending_change", {"change_type": "code_change", "description": "a"})
        seeded_store.upload_json(PENDING_CHANGES_BUCKET, "applied.json", {"id": "applied", "status": "applied"})

        all_changes = run(executor, "get_pending_changes", {})
        assert all_changes["count"] == 2
        applied = run(executor, "get_pending_changes", {"status": "applied"})
        assert [c["id"] for c in applied["changes"]] == ["applied"]

    def test_get_pending_changes_invalid_status(self, executor):
        result = run(executor, "get_pending_changes", {"status": "lost"})
        assert result["changes"] == []
        assert "status must be one of" in result["error"]

    def test_unreadable_entries_are_skipped(self, executor, seeded_store):
        seeded_store.upload_text(CHANGE_LOG_BUCKET, "2026-01-01T00-00-00-000Z_bad.json", "{not json")
        seeded_store.upload_json(CHANGE_LOG_BUCKET, "2026-01-02T00-00-00-000Z_ok.json", {"id": "ok"})
        result = run(executor, "get_change_log", {})
        assert [e["id"] for e in result["entries"]] == ["ok"]

    def test_implicit_log_failure_does_not_fail_tool(self, executor, seeded_store):
        with patch.object(executor, "log_change_entry", side_effect=StoreError("no bucket")):
            result = run(executor, "update_knowledge_base", {"content": "still saved"})
        assert result["success"] is True
        assert seeded_store.download_text(KB_BUCKET, kb_key(PROCESS_ID)) == "still saved"
