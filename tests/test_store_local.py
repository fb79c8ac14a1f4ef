"""
Tests for the filesystem document store.
"""

import pytest

from pace_dashboard.store.local_store import LocalDocumentStore
from pace_dashboard.store.types import StoreError, NotFoundError, ConflictError


@pytest.fixture
def store(tmp_path):
    return LocalDocumentStore(str(tmp_path / "storage"))


class TestLocalDocumentStore:

    def test_upload_creates_nested_directories(self, store, tmp_path):
        store.upload_text("knowledge-base", "p1/kb.md", "# KB", overwrite=True)
        assert (tmp_path / "storage" / "knowledge-base" / "p1" / "kb.md").read_text() == "# KB"
        assert store.download_text("knowledge-base", "p1/kb.md") == "# KB"

    def test_overwrite_leaves_no_temp_file(self, store, tmp_path):
        store.upload_text("knowledge-base", "p1/kb.md", "v1", overwrite=True)
        store.upload_text("knowledge-base", "p1/kb.md", "v2", overwrite=True)
        files = sorted(p.name for p in (tmp_path / "storage" / "knowledge-base" / "p1").iterdir())
        assert files == ["kb.md"]
        assert store.download_text("knowledge-base", "p1/kb.md") == "v2"

    def test_create_only_conflict(self, store):
        store.upload_json("pending-changes", "abc.json", {"id": "abc"})
        with pytest.raises(ConflictError):
            store.upload_json("pending-changes", "abc.json", {"id": "other"})

    def test_missing_object(self, store):
        with pytest.raises(NotFoundError):
            store.download("skills", "nope.json")

    def test_path_traversal_rejected(self, store):
        with pytest.raises(StoreError):
            store.upload_text("knowledge-base", "../../escape.md", "x", overwrite=True)
        with pytest.raises(StoreError):
            store.download("knowledge-base", "../skills/index.json")

    def test_list_by_name(self, store):
        for key in ["2026-01-01T00-00-00-000Z_a.json", "2026-01-02T00-00-00-000Z_b.json"]:
            store.upload_json("change-log", key, {})
        listing = store.list("change-log", sort_by="name", order="desc")
        assert [obj.name for obj in listing] == ["2026-01-02T00-00-00-000Z_b.json",
                                                 "2026-01-01T00-00-00-000Z_a.json"]
        assert all(obj.size > 0 for obj in listing)

    def test_list_prefix_and_missing_bucket(self, store):
        store.upload_text("chat-logs", "dashboard-chat/one.md", "x")
        assert [obj.name for obj in store.list("chat-logs", "dashboard-chat")] == ["one.md"]
        assert store.list("chat-logs", "absent") == []
        assert store.list("no-bucket") == []
