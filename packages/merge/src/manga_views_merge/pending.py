"""Flat-file pending merge.

Folds ``pending-views.json`` (one delta for the manga total) and
``pending-chapter-views.json`` (per-chapter deltas) into ``manga.json``,
then deletes both staging files.

Staging files are only deleted after ``manga.json`` has been written, so a
crash leaves them in place to be re-processed by the next run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from manga_views_common import (
    AggregateNotFoundError,
    MalformedDocumentError,
    StorageError,
    get_logger,
)
from manga_views_storage import (
    MANGA_JSON,
    PENDING_CHAPTER_VIEWS_JSON,
    PENDING_VIEWS_JSON,
    DocumentStore,
)

from manga_views_merge._staging import is_delta, read_staging

logger = get_logger(__name__)


@dataclass
class PendingFold:
    """Outcome of folding flat staging into the aggregate document."""

    manga_views_added: int = 0
    chapter_views_added: int = 0
    chapters_updated: list[str] = field(default_factory=list)
    unknown_chapters: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.manga_views_added > 0 or bool(self.chapters_updated)


@dataclass
class PendingMergeResult(PendingFold):
    """Outcome of a full flat-file merge run."""

    dry_run: bool = False
    written: bool = False
    deleted: list[str] = field(default_factory=list)
    delete_failures: list[str] = field(default_factory=list)


def fold_pending_views(
    manga_doc: dict[str, Any],
    pending_views_doc: Optional[Any],
    pending_chapter_views_doc: Optional[Any],
) -> PendingFold:
    """Add flat pending deltas to the aggregate manga document in place.

    Args:
        manga_doc: Parsed ``manga.json``
        pending_views_doc: Parsed ``pending-views.json`` or None
        pending_chapter_views_doc: Parsed ``pending-chapter-views.json`` or None

    Returns:
        PendingFold with the amounts added. Chapters missing from
        ``manga_doc`` are listed in ``unknown_chapters`` and never created.
    """
    fold = PendingFold()

    if isinstance(pending_views_doc, dict):
        views_to_add = pending_views_doc.get("pendingViews")
        if is_delta(views_to_add) and views_to_add > 0:
            manga = manga_doc.setdefault("manga", {})
            manga["views"] = (manga.get("views") or 0) + views_to_add
            fold.manga_views_added = views_to_add
            logger.info("pending_views_added", amount=views_to_add, total=manga["views"])

    if isinstance(pending_chapter_views_doc, dict) and isinstance(
        pending_chapter_views_doc.get("chapters"), dict
    ):
        chapters = manga_doc.get("chapters")
        if not isinstance(chapters, dict):
            chapters = {}

        for chapter_id, chapter_data in pending_chapter_views_doc["chapters"].items():
            if not isinstance(chapter_data, dict):
                continue
            views_to_add = chapter_data.get("pendingViews")
            if not (is_delta(views_to_add) and views_to_add > 0):
                continue

            chapter = chapters.get(chapter_id)
            if not isinstance(chapter, dict):
                logger.warning(
                    "chapter_not_found",
                    chapter=chapter_id,
                    views_dropped=views_to_add,
                    document=MANGA_JSON,
                )
                fold.unknown_chapters.append(chapter_id)
                continue

            chapter["views"] = (chapter.get("views") or 0) + views_to_add
            fold.chapter_views_added += views_to_add
            fold.chapters_updated.append(chapter_id)
            logger.info(
                "pending_chapter_views_added",
                chapter=chapter_id,
                amount=views_to_add,
                total=chapter["views"],
            )

    return fold


def merge_pending_views(store: DocumentStore, dry_run: bool = False) -> PendingMergeResult:
    """Run the flat-file pending merge against a store.

    Args:
        store: Document store holding manga.json and the pending files
        dry_run: Compute the merge without writing or deleting anything

    Returns:
        PendingMergeResult describing what was added, written and deleted.

    Raises:
        AggregateNotFoundError: If manga.json does not exist
        MalformedDocumentError: If manga.json cannot be parsed
        StorageError: If writing manga.json fails
    """
    logger.info("pending_merge_started", root=str(store.root), dry_run=dry_run)

    manga_doc = store.read(MANGA_JSON)
    if manga_doc is None:
        logger.error("aggregate_not_found", document=MANGA_JSON)
        raise AggregateNotFoundError(MANGA_JSON)
    if not isinstance(manga_doc, dict):
        raise MalformedDocumentError(MANGA_JSON, "expected a JSON object")

    pending_views_doc = read_staging(store, PENDING_VIEWS_JSON)
    pending_chapter_views_doc = read_staging(store, PENDING_CHAPTER_VIEWS_JSON)

    fold = fold_pending_views(manga_doc, pending_views_doc, pending_chapter_views_doc)
    result = PendingMergeResult(
        manga_views_added=fold.manga_views_added,
        chapter_views_added=fold.chapter_views_added,
        chapters_updated=fold.chapters_updated,
        unknown_chapters=fold.unknown_chapters,
        dry_run=dry_run,
    )

    if not fold.has_changes:
        logger.info("pending_merge_noop")
        return result

    if dry_run:
        logger.info(
            "pending_merge_dry_run",
            manga_views_added=result.manga_views_added,
            chapter_views_added=result.chapter_views_added,
        )
        return result

    store.write(MANGA_JSON, manga_doc)
    result.written = True
    logger.info(
        "pending_merge_written",
        manga_views_added=result.manga_views_added,
        chapter_views_added=result.chapter_views_added,
    )

    # A malformed staging file read as None is left on disk for inspection
    for name, doc in (
        (PENDING_VIEWS_JSON, pending_views_doc),
        (PENDING_CHAPTER_VIEWS_JSON, pending_chapter_views_doc),
    ):
        if doc is None:
            continue
        try:
            if store.delete_file(name):
                result.deleted.append(name)
        except StorageError as e:
            logger.warning("staging_delete_failed", document=name, error=str(e))
            result.delete_failures.append(name)

    logger.info("pending_merge_completed", deleted=result.deleted)
    return result
