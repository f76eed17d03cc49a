"""Unit tests for the bookmark domain models.

Covers:
- Bookmark: camelCase aliases, title/saved_at coercion, snapshot()
- is_empty: the merge emptiness rule
- BookmarkCollection: ordering, tombstones, JSON persistence, legacy payloads
"""

from __future__ import annotations

import json
import unittest
from datetime import UTC, datetime

from pydantic import ValidationError

from savedjobs.domain.models import Bookmark, BookmarkCollection, is_empty


class TestBookmark(unittest.TestCase):
    def test_accepts_camel_case_payload(self):
        bookmark = Bookmark.model_validate(
            {
                "jobId": 42,
                "title": "Backend Engineer",
                "companyName": "Acme",
                "minSalary": 50000,
                "jobLocationType": "REMOTE",
                "employmentType": "FULL_TIME",
                "savedAt": "2025-03-01T09:00:00Z",
            }
        )

        assert bookmark.job_id == 42
        assert bookmark.company_name == "Acme"
        assert bookmark.min_salary == 50000
        assert bookmark.location_type == "REMOTE"
        assert bookmark.employment_type == "FULL_TIME"
        assert bookmark.saved_at == datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

    def test_accepts_legacy_id_key(self):
        """Collections written by earlier releases used ``id`` for the job id."""
        bookmark = Bookmark.model_validate({"id": 7, "title": "QA"})
        assert bookmark.job_id == 7

    def test_missing_title_becomes_empty_string(self):
        bookmark = Bookmark.model_validate({"jobId": 1, "title": None})
        assert bookmark.title == ""

    def test_unparseable_saved_at_defaults_to_now(self):
        before = datetime.now(UTC)
        bookmark = Bookmark.model_validate({"jobId": 1, "title": "x", "savedAt": "garbage"})
        assert bookmark.saved_at >= before

    def test_serializes_with_camel_case_aliases(self):
        bookmark = Bookmark(job_id=3, title="Designer", company_name="Acme", location_type="HYBRID")
        dumped = bookmark.model_dump(mode="json", by_alias=True)
        assert dumped["jobId"] == 3
        assert dumped["companyName"] == "Acme"
        assert dumped["locationType"] == "HYBRID"
        assert dumped["syncedAt"] is None

    def test_synced_reflects_synced_at(self):
        bookmark = Bookmark(job_id=1, title="x")
        assert not bookmark.synced
        assert bookmark.model_copy(update={"synced_at": datetime.now(UTC)}).synced

    def test_bookmark_is_immutable(self):
        bookmark = Bookmark(job_id=1, title="x")
        with self.assertRaises(ValidationError):
            bookmark.title = "changed"

    def test_saved_at_known_is_not_persisted(self):
        bookmark = Bookmark(job_id=1, title="x", saved_at_known=False)
        dumped = bookmark.model_dump(mode="json", by_alias=True)
        assert "saved_at_known" not in dumped
        assert Bookmark.model_validate(dumped).saved_at_known

    def test_snapshot_excludes_identity_and_timestamps(self):
        snapshot = Bookmark(job_id=1, title="x", city="Ankara").snapshot()
        assert snapshot["city"] == "Ankara"
        assert "job_id" not in snapshot
        assert "saved_at" not in snapshot


class TestIsEmpty(unittest.TestCase):
    def test_none_and_blank_strings_are_empty(self):
        assert is_empty(None)
        assert is_empty("")
        assert is_empty("   ")

    def test_zero_is_a_value(self):
        assert not is_empty(0)
        assert not is_empty(0.0)
        assert not is_empty("0")


class TestBookmarkCollection(unittest.TestCase):
    def _bookmark(self, job_id: int, minute: int) -> Bookmark:
        return Bookmark(
            job_id=job_id,
            title=f"Job {job_id}",
            saved_at=datetime(2025, 3, 1, 9, minute, tzinfo=UTC),
        )

    def test_upsert_is_keyed_by_job_id(self):
        collection = BookmarkCollection()
        collection.upsert(self._bookmark(1, 0))
        collection.upsert(self._bookmark(1, 5))
        assert len(collection) == 1
        assert 1 in collection

    def test_sorted_bookmarks_newest_first(self):
        collection = BookmarkCollection()
        for job_id, minute in ((1, 10), (2, 30), (3, 20)):
            collection.upsert(self._bookmark(job_id, minute))
        assert [b.job_id for b in collection.sorted_bookmarks()] == [2, 3, 1]

    def test_json_round_trip_keeps_tombstones(self):
        removed_at = datetime(2025, 3, 2, tzinfo=UTC)
        collection = BookmarkCollection()
        collection.upsert(self._bookmark(1, 0))
        collection.mark_removed(9, removed_at)

        restored = BookmarkCollection.from_json(collection.to_json())

        assert restored.job_ids() == {1}
        assert restored.pending_removals == {9: removed_at}
        assert restored.get(1) == collection.get(1)

    def test_to_json_is_versioned(self):
        payload = json.loads(BookmarkCollection().to_json())
        assert payload == {"version": 1, "bookmarks": [], "pendingRemovals": {}}

    def test_from_json_accepts_legacy_array(self):
        raw = json.dumps(
            [
                {"id": 5, "title": "Old", "companyName": "Acme", "savedAt": "2024-01-01T00:00:00Z"},
                {"id": 6, "title": "Older", "savedAt": "2023-01-01T00:00:00Z"},
            ]
        )
        collection = BookmarkCollection.from_json(raw)
        assert collection.job_ids() == {5, 6}
        assert collection.pending_removals == {}

    def test_from_json_rejects_invalid_payloads(self):
        with self.assertRaises(ValueError):
            BookmarkCollection.from_json("{not json")
        with self.assertRaises(ValueError):
            BookmarkCollection.from_json('"a string"')
        with self.assertRaises(ValueError):
            BookmarkCollection.from_json('[{"title": "no id"}]')

    def test_clear_removal_is_noop_for_unknown_id(self):
        collection = BookmarkCollection()
        collection.clear_removal(123)
        assert collection.pending_removals == {}
