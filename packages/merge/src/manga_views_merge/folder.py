"""Folder-based pending merge.

Folds the staging folder (``data/`` by default) into the aggregate store:

- ``data/manga.json`` (``{totalViews, chapters: {id: views}}``) into ``manga.json``
- ``data/daily-views.json`` (``{date: {mangaViews|manga, chapters}}``) into
  ``daily-views.json``

then deletes the whole staging folder. Each source is handled independently;
a missing one does not block the other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from manga_views_common import (
    MalformedDocumentError,
    StagingCleanupError,
    StorageError,
    get_logger,
)
from manga_views_storage import DAILY_VIEWS_JSON, MANGA_JSON, DocumentStore, staging_document

from manga_views_merge._staging import is_delta, read_staging

logger = get_logger(__name__)


@dataclass
class FolderMergeResult:
    """Outcome of a folder merge run.

    Attributes:
        staging_folder: Name of the staging folder
        folder_found: Whether the staging folder existed at the start
        dry_run: Whether writes and deletes were suppressed
        merged: Aggregate documents that were updated
        skipped: Staging documents that were absent, unreadable, or had no
            aggregate to merge into
        failed: Staging documents kept because their aggregate write failed
        folder_deleted: Whether the staging folder was removed
    """

    staging_folder: str
    folder_found: bool = False
    dry_run: bool = False
    merged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    folder_deleted: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.merged)


def format_instant(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-31T08:15:00.000Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def merge_manga_snapshot(manga_doc: dict[str, Any], snapshot: Optional[Any]) -> dict[str, Any]:
    """Add a staged manga snapshot to the aggregate manga document in place.

    A snapshot without a truthy ``totalViews`` (missing, zero, or not an
    integer) is "no valid data" and leaves the document untouched, chapter
    deltas included. Chapters missing from the aggregate are never created.

    Returns:
        The (mutated) aggregate document.
    """
    total_views = snapshot.get("totalViews") if isinstance(snapshot, dict) else None
    if not total_views or not is_delta(total_views):
        logger.warning("no_valid_manga_snapshot", total_views=total_views)
        return manga_doc

    manga = manga_doc.setdefault("manga", {})
    old_views = manga.get("views") or 0
    manga["views"] = old_views + total_views
    logger.info("manga_views_merged", old=old_views, added=total_views, total=manga["views"])

    staged_chapters = snapshot.get("chapters")
    chapters = manga_doc.get("chapters")
    if not isinstance(staged_chapters, dict) or not isinstance(chapters, dict):
        return manga_doc

    updated = 0
    for chapter_id, views in staged_chapters.items():
        if not is_delta(views):
            logger.warning("invalid_chapter_delta", chapter=chapter_id, views=views)
            continue
        chapter = chapters.get(chapter_id)
        if not isinstance(chapter, dict):
            logger.warning(
                "chapter_not_found",
                chapter=chapter_id,
                views_dropped=views,
                document=MANGA_JSON,
            )
            continue
        old_chapter_views = chapter.get("views") or 0
        chapter["views"] = old_chapter_views + views
        updated += 1
        logger.debug(
            "chapter_views_merged",
            chapter=chapter_id,
            old=old_chapter_views,
            added=views,
            total=chapter["views"],
        )

    logger.info("chapters_merged", updated=updated)
    return manga_doc


def normalize_daily_record(record: Any) -> dict[str, Any]:
    """Normalize a staged day to ``{"manga": int, "chapters": {id: int}}``.

    The day's manga delta is read from ``mangaViews`` or, failing that,
    ``manga``. Non-integer values are dropped.
    """
    if not isinstance(record, dict):
        return {"manga": 0, "chapters": {}}

    manga_views = record.get("mangaViews")
    if manga_views is None:
        manga_views = record.get("manga")
    if manga_views is None:
        manga_views = 0
    elif not is_delta(manga_views):
        logger.warning("invalid_daily_delta", views=manga_views)
        manga_views = 0

    chapters: dict[str, int] = {}
    staged_chapters = record.get("chapters")
    if isinstance(staged_chapters, dict):
        for chapter_id, views in staged_chapters.items():
            if is_delta(views):
                chapters[chapter_id] = views
            else:
                logger.warning("invalid_chapter_delta", chapter=chapter_id, views=views)

    return {"manga": manga_views, "chapters": chapters}


def merge_daily_views(
    daily_doc: dict[str, Any],
    snapshot: Optional[Any],
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Add staged per-date views to ``dailyRecords`` in place.

    Existing dates are summed, chapter counters inside a date are created on
    demand, and new dates are inserted as normalized. ``lastCleanup`` is
    stamped whenever the snapshot is a mapping, even an empty one.

    Args:
        daily_doc: Parsed ``daily-views.json``
        snapshot: Parsed staging ``daily-views.json`` or None
        now: Timestamp for ``lastCleanup`` (default: current UTC time)

    Returns:
        The (mutated) aggregate document.

    Raises:
        MalformedDocumentError: If existing history in ``daily_doc`` is not
            shaped as objects (it is never overwritten)
    """
    if not isinstance(snapshot, dict):
        logger.warning("no_valid_daily_snapshot")
        return daily_doc

    records = daily_doc.get("dailyRecords")
    if records is None:
        records = {}
        daily_doc["dailyRecords"] = records
    elif not isinstance(records, dict):
        raise MalformedDocumentError(DAILY_VIEWS_JSON, "dailyRecords is not an object")

    for date, record in snapshot.items():
        normalized = normalize_daily_record(record)
        existing = records.get(date)

        if existing is not None and not isinstance(existing, dict):
            raise MalformedDocumentError(
                DAILY_VIEWS_JSON, f"dailyRecords[{date!r}] is not an object"
            )

        if existing is not None:
            existing["manga"] = (existing.get("manga") or 0) + normalized["manga"]
            existing_chapters = existing.get("chapters")
            if existing_chapters is None:
                existing_chapters = {}
                existing["chapters"] = existing_chapters
            elif not isinstance(existing_chapters, dict):
                raise MalformedDocumentError(
                    DAILY_VIEWS_JSON, f"dailyRecords[{date!r}].chapters is not an object"
                )
            for chapter_id, views in normalized["chapters"].items():
                existing_chapters[chapter_id] = (existing_chapters.get(chapter_id) or 0) + views
            logger.info(
                "daily_record_merged",
                date=date,
                manga_added=normalized["manga"],
                chapters=len(normalized["chapters"]),
            )
        else:
            records[date] = normalized
            logger.info(
                "daily_record_added",
                date=date,
                manga=normalized["manga"],
                chapters=len(normalized["chapters"]),
            )

    daily_doc["lastCleanup"] = format_instant(now or datetime.now(timezone.utc))
    logger.info("daily_views_merged", dates=len(snapshot))
    return daily_doc


def _read_aggregate(store: DocumentStore, name: str) -> Optional[dict[str, Any]]:
    doc = store.read(name)
    if doc is not None and not isinstance(doc, dict):
        raise MalformedDocumentError(name, "expected a JSON object")
    return doc


def merge_data_folder(
    store: DocumentStore,
    staging_folder: str = "data",
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> FolderMergeResult:
    """Run the folder-based pending merge against a store.

    Args:
        store: Document store holding the aggregate documents
        staging_folder: Staging folder name relative to the store root
        dry_run: Compute the merge without writing or deleting anything
        now: Timestamp for ``lastCleanup`` (default: current UTC time)

    Returns:
        FolderMergeResult describing what was merged and cleaned up.

    Raises:
        MalformedDocumentError: If an aggregate document cannot be parsed
        StagingCleanupError: If staging data could not be removed after a
            successful merge
    """
    result = FolderMergeResult(staging_folder=staging_folder, dry_run=dry_run)

    if not store.exists(staging_folder):
        logger.info("staging_folder_not_found", folder=staging_folder)
        return result

    result.folder_found = True
    logger.info("folder_merge_started", root=str(store.root), folder=staging_folder, dry_run=dry_run)

    sources: list[tuple[str, str, Callable[[dict[str, Any], Any], dict[str, Any]]]] = [
        (staging_document(staging_folder, MANGA_JSON), MANGA_JSON, merge_manga_snapshot),
        (
            staging_document(staging_folder, DAILY_VIEWS_JSON),
            DAILY_VIEWS_JSON,
            lambda doc, snapshot: merge_daily_views(doc, snapshot, now=now),
        ),
    ]

    consumed: list[str] = []
    for staging_name, aggregate_name, merge in sources:
        if not store.exists(staging_name):
            logger.warning("staging_not_found", document=staging_name)
            result.skipped.append(staging_name)
            continue

        aggregate = _read_aggregate(store, aggregate_name)
        if aggregate is None:
            logger.warning("aggregate_not_found", document=aggregate_name, staging=staging_name)
            result.skipped.append(staging_name)
            continue

        snapshot = read_staging(store, staging_name)
        if snapshot is None:
            result.skipped.append(staging_name)
            continue

        merged = merge(aggregate, snapshot)

        if dry_run:
            result.merged.append(aggregate_name)
            continue

        try:
            store.write(aggregate_name, merged)
        except StorageError as e:
            logger.error(
                "aggregate_write_failed",
                document=aggregate_name,
                staging=staging_name,
                error=str(e),
            )
            result.failed.append(staging_name)
            continue

        logger.info("staging_merged", staging=staging_name, document=aggregate_name)
        result.merged.append(aggregate_name)
        consumed.append(staging_name)

    if dry_run:
        logger.info("folder_merge_dry_run", merged=result.merged, skipped=result.skipped)
        return result

    if result.failed:
        # Only drop what was persisted; the rest stays for the next run
        for name in consumed:
            try:
                store.delete_file(name)
            except StorageError as e:
                raise StagingCleanupError(
                    f"Merged {name} but could not delete it: {e}"
                ) from e
        logger.warning("staging_folder_kept", folder=staging_folder, failed=result.failed)
        return result

    if result.has_changes:
        try:
            result.folder_deleted = store.delete_folder(staging_folder)
        except StorageError as e:
            raise StagingCleanupError(
                f"Merged {staging_folder}/ but could not delete it: {e}"
            ) from e
        logger.info("folder_merge_completed", merged=result.merged)
        return result

    logger.warning("folder_merge_no_changes", skipped=result.skipped)
    if store.exists(staging_folder):
        try:
            result.folder_deleted = store.delete_folder(staging_folder)
        except StorageError as e:
            logger.warning("staging_cleanup_failed", folder=staging_folder, error=str(e))
    return result
