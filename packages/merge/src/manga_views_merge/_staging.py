"""Helpers shared by both pipelines for reading staging documents."""

from __future__ import annotations

from typing import Any, Optional

from manga_views_common import StorageError, get_logger
from manga_views_storage import DocumentStore

logger = get_logger(__name__)


def read_staging(store: DocumentStore, name: str) -> Optional[Any]:
    """Read a staging document, treating any read failure as "nothing pending".

    Aggregate documents must not go through here: a malformed aggregate is
    fatal and has to propagate.
    """
    try:
        doc = store.read(name)
    except StorageError as e:
        logger.warning("staging_unreadable", document=name, error=str(e))
        return None

    if doc is None:
        logger.info("staging_not_found", document=name)
    return doc


def is_delta(value: Any) -> bool:
    """True for non-negative integer view deltas (bools are rejected)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
