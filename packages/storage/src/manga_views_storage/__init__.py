"""manga-views storage - JSON document store.

This package provides:
- DocumentStore (read/write/delete of whole JSON documents under one root)
- Document names of the aggregate and staging files

Exclusive file ownership - the merge pipelines never touch the filesystem
directly.
"""

from manga_views_storage.document_store import DocumentStore
from manga_views_storage.documents import (
    DAILY_VIEWS_JSON,
    MANGA_JSON,
    PENDING_CHAPTER_VIEWS_JSON,
    PENDING_VIEWS_JSON,
    staging_document,
)

__all__ = [
    "DAILY_VIEWS_JSON",
    "DocumentStore",
    "MANGA_JSON",
    "PENDING_CHAPTER_VIEWS_JSON",
    "PENDING_VIEWS_JSON",
    "staging_document",
]
