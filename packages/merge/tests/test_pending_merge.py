"""Tests for the flat-file pending merge.

Tests cover:
- fold_pending_views: manga total, chapter deltas, unknown chapters, zero deltas
- merge_pending_views: persist-then-delete ordering, no-op runs, fatal and
  non-fatal failures, dry runs
"""

from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from manga_views_common import AggregateNotFoundError, MalformedDocumentError, StorageError
from manga_views_merge import PendingMergeResult, fold_pending_views, merge_pending_views

pytestmark = pytest.mark.unit


# =============================================================================
# fold_pending_views
# =============================================================================


class TestFoldMangaViews:
    """Tests for the pending-views.json part of the fold."""

    @pytest.mark.parametrize("views,pending", [(0, 1), (100, 5), (7, 1000)])
    def test_adds_pending_to_total(self, views, pending):
        doc = {"manga": {"views": views}, "chapters": {}}

        fold = fold_pending_views(doc, {"pendingViews": pending}, None)

        assert doc["manga"]["views"] == views + pending
        assert fold.manga_views_added == pending
        assert fold.has_changes

    def test_missing_views_treated_as_zero(self):
        doc = {"manga": {"title": "x"}}

        fold_pending_views(doc, {"pendingViews": 4}, None)

        assert doc["manga"]["views"] == 4

    def test_missing_manga_object_created(self):
        doc = {"chapters": {}}

        fold_pending_views(doc, {"pendingViews": 2}, None)

        assert doc["manga"] == {"views": 2}

    @pytest.mark.parametrize("pending_doc", [None, {}, {"pendingViews": 0}, {"pendingViews": -3}])
    def test_no_contribution(self, pending_doc):
        doc = {"manga": {"views": 100}}

        fold = fold_pending_views(doc, pending_doc, None)

        assert doc == {"manga": {"views": 100}}
        assert fold.manga_views_added == 0
        assert not fold.has_changes

    @pytest.mark.parametrize("value", ["5", 2.5, True, None, [5]])
    def test_non_integer_pending_ignored(self, value):
        doc = {"manga": {"views": 100}}

        fold = fold_pending_views(doc, {"pendingViews": value}, None)

        assert doc["manga"]["views"] == 100
        assert not fold.has_changes

    def test_non_mapping_staging_ignored(self):
        doc = {"manga": {"views": 100}}

        fold = fold_pending_views(doc, [1, 2, 3], None)

        assert not fold.has_changes


class TestFoldChapterViews:
    """Tests for the pending-chapter-views.json part of the fold."""

    def test_adds_to_known_chapters(self, manga_doc):
        pending = {"chapters": {"ch1": {"pendingViews": 3}, "ch2": {"pendingViews": 9}}}

        fold = fold_pending_views(manga_doc, None, pending)

        assert manga_doc["chapters"]["ch1"]["views"] == 13
        assert manga_doc["chapters"]["ch2"]["views"] == 9
        assert fold.chapter_views_added == 12
        assert fold.chapters_updated == ["ch1", "ch2"]
        assert fold.has_changes

    def test_unknown_chapter_dropped_with_warning(self, manga_doc):
        pending = {"chapters": {"ch99": {"pendingViews": 7}}}

        with capture_logs() as logs:
            fold = fold_pending_views(manga_doc, None, pending)

        assert set(manga_doc["chapters"]) == {"ch1", "ch2"}
        assert fold.unknown_chapters == ["ch99"]
        assert not fold.has_changes
        warnings = [log for log in logs if log["log_level"] == "warning"]
        assert warnings[0]["event"] == "chapter_not_found"
        assert warnings[0]["chapter"] == "ch99"
        assert warnings[0]["views_dropped"] == 7

    def test_unknown_chapter_does_not_block_known(self, manga_doc):
        pending = {"chapters": {"ch99": {"pendingViews": 7}, "ch1": {"pendingViews": 1}}}

        fold = fold_pending_views(manga_doc, None, pending)

        assert manga_doc["chapters"]["ch1"]["views"] == 11
        assert fold.has_changes
        assert fold.chapter_views_added == 1

    def test_chapter_missing_views_treated_as_zero(self):
        doc = {"manga": {"views": 0}, "chapters": {"ch1": {"title": "One"}}}

        fold_pending_views(doc, None, {"chapters": {"ch1": {"pendingViews": 2}}})

        assert doc["chapters"]["ch1"]["views"] == 2

    def test_zero_and_malformed_chapter_entries_skipped(self, manga_doc):
        pending = {
            "chapters": {
                "ch1": {"pendingViews": 0},
                "ch2": 5,
            }
        }

        fold = fold_pending_views(manga_doc, None, pending)

        assert manga_doc["chapters"]["ch1"]["views"] == 10
        assert manga_doc["chapters"]["ch2"]["views"] == 0
        assert not fold.has_changes

    def test_aggregate_without_chapters(self):
        doc = {"manga": {"views": 1}}

        fold = fold_pending_views(doc, None, {"chapters": {"ch1": {"pendingViews": 2}}})

        assert "chapters" not in doc
        assert fold.unknown_chapters == ["ch1"]

    def test_missing_chapters_map_ignored(self, manga_doc):
        fold = fold_pending_views(manga_doc, None, {"other": 1})

        assert not fold.has_changes


# =============================================================================
# merge_pending_views
# =============================================================================


class TestMergePendingViews:
    """End-to-end tests against an on-disk store."""

    def test_worked_example(self, store, put, get):
        put("manga.json", {"manga": {"views": 100}, "chapters": {"ch1": {"views": 10}}})
        put("pending-views.json", {"pendingViews": 5})
        put(
            "pending-chapter-views.json",
            {"chapters": {"ch1": {"pendingViews": 3}, "ch2": {"pendingViews": 7}}},
        )

        result = merge_pending_views(store)

        assert get("manga.json") == {"manga": {"views": 105}, "chapters": {"ch1": {"views": 13}}}
        assert result.manga_views_added == 5
        assert result.chapter_views_added == 3
        assert result.unknown_chapters == ["ch2"]
        assert result.written
        assert result.deleted == ["pending-views.json", "pending-chapter-views.json"]
        assert not store.exists("pending-views.json")
        assert not store.exists("pending-chapter-views.json")

    def test_missing_aggregate_is_fatal(self, store, put):
        put("pending-views.json", {"pendingViews": 5})

        with pytest.raises(AggregateNotFoundError):
            merge_pending_views(store)

        assert store.exists("pending-views.json")

    def test_malformed_aggregate_is_fatal(self, store, put):
        put("manga.json", "{broken")
        put("pending-views.json", {"pendingViews": 5})

        with pytest.raises(MalformedDocumentError):
            merge_pending_views(store)

        assert store.exists("pending-views.json")

    def test_non_object_aggregate_is_fatal(self, store, put):
        put("manga.json", [1, 2])

        with pytest.raises(MalformedDocumentError):
            merge_pending_views(store)

    def test_nothing_pending_is_noop(self, store, put, tmp_path):
        path = put("manga.json", {"manga": {"views": 100}, "chapters": {}})
        before = path.read_bytes()

        result = merge_pending_views(store)

        assert isinstance(result, PendingMergeResult)
        assert not result.has_changes
        assert not result.written
        assert result.deleted == []
        assert path.read_bytes() == before

    def test_zero_pending_keeps_staging(self, store, put, get):
        put("manga.json", {"manga": {"views": 100}, "chapters": {}})
        put("pending-views.json", {"pendingViews": 0})

        result = merge_pending_views(store)

        assert not result.has_changes
        assert get("manga.json")["manga"]["views"] == 100
        assert store.exists("pending-views.json")

    def test_only_chapter_staging_present(self, store, put, get, manga_doc):
        put("manga.json", manga_doc)
        put("pending-chapter-views.json", {"chapters": {"ch2": {"pendingViews": 4}}})

        result = merge_pending_views(store)

        assert get("manga.json")["chapters"]["ch2"]["views"] == 4
        assert result.deleted == ["pending-chapter-views.json"]

    def test_zero_file_deleted_alongside_changed_file(self, store, put, manga_doc):
        put("manga.json", manga_doc)
        put("pending-views.json", {"pendingViews": 0})
        put("pending-chapter-views.json", {"chapters": {"ch1": {"pendingViews": 1}}})

        result = merge_pending_views(store)

        assert result.deleted == ["pending-views.json", "pending-chapter-views.json"]

    def test_second_run_is_noop(self, store, put, tmp_path, manga_doc):
        path = put("manga.json", manga_doc)
        put("pending-views.json", {"pendingViews": 5})

        merge_pending_views(store)
        after_first = path.read_bytes()
        second = merge_pending_views(store)

        assert not second.has_changes
        assert second.deleted == []
        assert path.read_bytes() == after_first

    def test_malformed_staging_skipped_and_kept(self, store, put, get, manga_doc):
        put("manga.json", manga_doc)
        put("pending-views.json", "{oops")
        put("pending-chapter-views.json", {"chapters": {"ch1": {"pendingViews": 2}}})

        with capture_logs() as logs:
            result = merge_pending_views(store)

        assert get("manga.json")["manga"]["views"] == 100
        assert get("manga.json")["chapters"]["ch1"]["views"] == 12
        assert result.deleted == ["pending-chapter-views.json"]
        assert store.exists("pending-views.json")
        assert any(log["event"] == "staging_unreadable" for log in logs)

    def test_invalid_utf8_staging_skipped(self, store, put, get, tmp_path, manga_doc):
        put("manga.json", manga_doc)
        (tmp_path / "pending-views.json").write_bytes(b'{"pendingViews": 5, "x": "\xff\xfe"}')
        put("pending-chapter-views.json", {"chapters": {"ch1": {"pendingViews": 2}}})

        result = merge_pending_views(store)

        assert get("manga.json")["manga"]["views"] == 100
        assert get("manga.json")["chapters"]["ch1"]["views"] == 12
        assert result.deleted == ["pending-chapter-views.json"]
        assert store.exists("pending-views.json")

    def test_unreadable_staging_skipped(self, store, put, get, tmp_path, manga_doc):
        put("manga.json", manga_doc)
        (tmp_path / "pending-views.json").mkdir()
        put("pending-chapter-views.json", {"chapters": {"ch1": {"pendingViews": 2}}})

        with capture_logs() as logs:
            result = merge_pending_views(store)

        assert get("manga.json")["chapters"]["ch1"]["views"] == 12
        assert result.deleted == ["pending-chapter-views.json"]
        assert any(
            log["event"] == "staging_unreadable" and log["document"] == "pending-views.json"
            for log in logs
        )

    def test_write_failure_keeps_staging(self, store, put, get, manga_doc):
        put("manga.json", manga_doc)
        put("pending-views.json", {"pendingViews": 5})

        with patch.object(store, "write", side_effect=StorageError("disk full")):
            with pytest.raises(StorageError):
                merge_pending_views(store)

        assert store.exists("pending-views.json")
        assert get("manga.json")["manga"]["views"] == 100

        # The next run re-applies the same pending amount
        merge_pending_views(store)
        assert get("manga.json")["manga"]["views"] == 105

    def test_delete_failure_is_not_fatal(self, store, put, get, manga_doc):
        put("manga.json", manga_doc)
        put("pending-views.json", {"pendingViews": 5})
        put("pending-chapter-views.json", {"chapters": {"ch1": {"pendingViews": 1}}})

        real_delete = store.delete_file

        def flaky_delete(name):
            if name == "pending-views.json":
                raise StorageError("permission denied")
            return real_delete(name)

        with patch.object(store, "delete_file", side_effect=flaky_delete):
            result = merge_pending_views(store)

        assert result.written
        assert get("manga.json")["manga"]["views"] == 105
        assert result.delete_failures == ["pending-views.json"]
        assert result.deleted == ["pending-chapter-views.json"]
        assert store.exists("pending-views.json")
        assert not store.exists("pending-chapter-views.json")

    def test_dry_run_changes_nothing(self, store, put, tmp_path, manga_doc):
        path = put("manga.json", manga_doc)
        put("pending-views.json", {"pendingViews": 5})
        before = path.read_bytes()

        result = merge_pending_views(store, dry_run=True)

        assert result.dry_run
        assert result.manga_views_added == 5
        assert not result.written
        assert path.read_bytes() == before
        assert store.exists("pending-views.json")
