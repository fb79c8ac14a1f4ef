"""
Tests for system prompt assembly.
"""

import asyncio

import pytest
from unittest.mock import MagicMock

from pace_dashboard.agents.context import (
    ChatContext,
    ContextAssembler,
    build_persona,
    NO_SKILLS,
    SKILLS_ERROR,
)
from pace_dashboard.core.config import CHAT_LOGS_BUCKET, CHAT_LOGS_PREFIX, SKILLS_BUCKET, SKILLS_INDEX_KEY
from pace_dashboard.core.dashboard import IDashboardSource

from conftest import PROCESS_ID


class FakeDashboard(IDashboardSource):
    """Fixed dashboard tables."""

    def __init__(self):
        self.runs_requested_for = []

    def list_recent_runs(self, process_id=None, limit=10):
        self.runs_requested_for.append(process_id)
        return [{"name": "Invoice 4412", "status": "needs_review",
                 "current_status_text": "Amount mismatch", "created_at": "2026-01-05T10:00:00"}]

    def list_organizations(self):
        return [{"id": "org-1", "name": "Acme Corp"}]

    def list_processes(self, org_id):
        return [{"id": PROCESS_ID, "name": "Invoice Processing"}] if org_id == "org-1" else []

    def count_runs(self, process_id):
        return 3


@pytest.fixture
def assembler(seeded_store):
    return ContextAssembler(seeded_store, FakeDashboard(), default_process_id=PROCESS_ID,
                            default_process_name="Invoice Processing")


class TestPersona:

    def test_default_process_named(self):
        prompt = build_persona(ChatContext(), "- skills", PROCESS_ID, "Invoice Processing")
        assert f"Default process is Invoice Processing (ID: {PROCESS_ID})." in prompt
        assert "CURRENT CONTEXT" not in prompt
        assert "- skills" in prompt

    def test_current_context_block(self):
        context = ChatContext(org_id="org-1", org_name="Acme Corp", process_id="p9", process_name="Payables")
        prompt = build_persona(context, "", PROCESS_ID, "Invoice Processing")
        assert "- Organization: Acme Corp (ID: org-1)" in prompt
        assert "- Process: Payables (ID: p9)" in prompt
        assert "Default process is Payables (ID: p9)." in prompt


class TestContextSources:

    def test_skills_summary_lists_enabled_only(self, assembler):
        summary = assembler.fetch_skills_summary()
        assert summary == "- **Invoice Extraction** (invoice-extraction): Extracts invoice fields."

    def test_skills_summary_without_index(self, store):
        assembler = ContextAssembler(store, FakeDashboard())
        assert assembler.fetch_skills_summary() == NO_SKILLS

    def test_skills_summary_empty_index(self, store):
        store.upload_json(SKILLS_BUCKET, SKILLS_INDEX_KEY, [], overwrite=True)
        assert ContextAssembler(store, FakeDashboard()).fetch_skills_summary() == NO_SKILLS

    def test_dashboard_context(self, assembler):
        ctx = assembler.fetch_dashboard_context(PROCESS_ID)
        assert ctx.startswith("\n\n--- Current Dashboard State ---\nRecent runs:\n")
        assert "- Invoice 4412 | Status: needs_review | Amount mismatch | 2026-01-05T10:00:00" in ctx

    def test_org_context(self, assembler):
        ctx = assembler.fetch_org_context()
        assert "--- Available Organizations ---" in ctx
        assert "### Acme Corp (ID: org-1)" in ctx
        assert f"- Invoice Processing (ID: {PROCESS_ID})" in ctx
        assert "3 runs" in ctx

    def test_shared_chat_context_oldest_first(self, seeded_store, assembler):
        for ts in ["2026-01-01T00-00-00-000Z", "2026-01-02T00-00-00-000Z",
                   "2026-01-03T00-00-00-000Z", "2026-01-04T00-00-00-000Z"]:
            seeded_store.upload_text(CHAT_LOGS_BUCKET, f"{CHAT_LOGS_PREFIX}/{ts}.md", f"log {ts[:10]}")

        ctx = assembler.fetch_shared_chat_context()
        assert "--- Recent Dashboard Chat ---" in ctx
        assert "log 2026-01-01" not in ctx
        assert ctx.index("log 2026-01-02") < ctx.index("log 2026-01-03") < ctx.index("log 2026-01-04")

    def test_shared_chat_context_disabled(self, seeded_store):
        assembler = ContextAssembler(seeded_store, FakeDashboard(), chat_log_limit=0)
        assert assembler.fetch_shared_chat_context() == ""


class TestBuildSystemPrompt:

    def test_all_sources_concatenated(self, assembler):
        context = ChatContext(process_id=PROCESS_ID)
        prompt = asyncio.run(assembler.build_system_prompt(context))
        assert prompt.startswith("You are Pace")
        assert "Invoice Extraction" in prompt
        assert prompt.index("--- Available Organizations ---") < prompt.index("--- Current Dashboard State ---")
        assert assembler.dashboard.runs_requested_for == [PROCESS_ID]

    def test_failing_sources_fall_back(self, seeded_store):
        dashboard = MagicMock(spec=IDashboardSource)
        dashboard.list_recent_runs.side_effect = RuntimeError("db down")
        dashboard.list_organizations.side_effect = RuntimeError("db down")
        store = MagicMock(wraps=seeded_store)
        store.download_json.side_effect = RuntimeError("storage down")

        assembler = ContextAssembler(store, dashboard)
        prompt = asyncio.run(assembler.build_system_prompt(ChatContext()))

        assert SKILLS_ERROR in prompt
        assert "--- Available Organizations ---" not in prompt
        assert "--- Current Dashboard State ---" not in prompt
