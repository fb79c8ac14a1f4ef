"""
Tests for the stored record types.
"""

import re

import pytest

from pace_dashboard.core.schema import (
    ChangeLogEntry,
    PendingChange,
    Skill,
    filename_timestamp,
    utc_timestamp,
)


def test_timestamps():
    ts = utc_timestamp()
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", ts)
    assert filename_timestamp("2026-01-05T10:11:12.345Z") == "2026-01-05T10-11-12-345Z"


class TestSkill:

    def test_from_dict_keeps_unknown_fields(self):
        skill = Skill.from_dict({"name": "x", "owner": "ops", "enabled": None})
        assert skill.extra == {"owner": "ops"}
        assert skill.enabled is True

    def test_only_explicit_false_disables(self):
        assert Skill.from_dict({"name": "x", "enabled": False}).enabled is False


class TestChangeLogEntry:

    def test_new_entry(self):
        entry = ChangeLogEntry.new("updated_kb", "knowledge_base")
        assert entry.entity_name == ""
        assert entry.performed_by == "dashboard-chat"
        assert entry.object_key == f"{filename_timestamp(entry.created_at)}_{entry.id[:8]}.json"
        assert entry.to_dict()["action"] == "updated_kb"


class TestPendingChange:

    def test_defaults(self):
        change = PendingChange.new("feature_request", "Add export")
        assert change.priority == "medium"
        assert change.status == "pending"
        assert change.object_key == f"{change.id}.json"

    def test_invalid_priority(self):
        with pytest.raises(ValueError):
            PendingChange.new("deployment", "Ship it", priority="critical")
