"""Unit tests for workspace.bucket_store module."""

import json

import pytest

from src.workspace.bucket_store import BucketStore
from src.workspace.errors import BucketError


class TestBucketStore:
    """Test cases for BucketStore."""

    @pytest.fixture
    def store(self, tmp_path):
        """Create a store managing two buckets."""
        return BucketStore(str(tmp_path), ["wiki-pages", "page-revisions"])

    def test_load_missing_buckets_start_empty(self, store):
        """Buckets without a file load as empty dictionaries."""
        store.load()

        assert store.get("wiki-pages") == {}
        assert store.get("page-revisions") == {}

    def test_save_and_load_round_trip(self, store, tmp_path):
        """Saved buckets are read back by a new store."""
        store.add("wiki-pages", 12, {"title": "Start"})
        store.save()

        reloaded = BucketStore(str(tmp_path), ["wiki-pages"])
        reloaded.load()

        assert reloaded.get("wiki-pages") == {"12": {"title": "Start"}}
        assert (tmp_path / "buckets" / "wiki-pages.json").exists()

    def test_add_merges_nested_entries(self, store):
        """Adding to an existing entry merges nested dictionaries."""
        store.add("page-revisions", 3, {"1": {"text": "a"}})
        store.add("page-revisions", 3, {"2": {"text": "b"}})

        assert store.get("page-revisions") == {"3": {"1": {"text": "a"}, "2": {"text": "b"}}}

    def test_add_without_merge_replaces(self, store):
        """merge=False replaces the entry."""
        store.add("page-revisions", 3, {"1": {"text": "a"}})
        store.add("page-revisions", 3, {"2": {"text": "b"}}, merge=False)

        assert store.get("page-revisions") == {"3": {"2": {"text": "b"}}}

    def test_overwrite_stringifies_keys(self, store):
        """Overwrite stores top-level keys as strings."""
        store.overwrite("wiki-pages", {1: "a", 2: "b"})

        assert store.get("wiki-pages") == {"1": "a", "2": "b"}

    def test_unmanaged_bucket_raises(self, store):
        """Accessing a bucket the store does not manage raises BucketError."""
        with pytest.raises(BucketError, match="not managed"):
            store.get("revision-wikitext")

    def test_load_corrupt_bucket_raises(self, store, tmp_path):
        """A bucket file with invalid JSON raises BucketError."""
        bucket_dir = tmp_path / "buckets"
        bucket_dir.mkdir()
        (bucket_dir / "wiki-pages.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(BucketError) as exc_info:
            store.load()

        assert exc_info.value.bucket_path.endswith("wiki-pages.json")

    def test_load_non_object_bucket_raises(self, store, tmp_path):
        """A bucket file holding a list raises BucketError."""
        bucket_dir = tmp_path / "buckets"
        bucket_dir.mkdir()
        (bucket_dir / "wiki-pages.json").write_text(json.dumps([1, 2]), encoding="utf-8")

        with pytest.raises(BucketError, match="JSON object"):
            store.load()
