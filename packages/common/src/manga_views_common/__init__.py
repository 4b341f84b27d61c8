"""manga-views common - errors, logging and settings shared by all packages."""

from manga_views_common.config import Settings, get_settings
from manga_views_common.errors import (
    AggregateNotFoundError,
    MalformedDocumentError,
    MangaViewsError,
    MergeError,
    StagingCleanupError,
    StorageError,
)
from manga_views_common.logging_config import configure_logging, get_logger

__all__ = [
    "AggregateNotFoundError",
    "MalformedDocumentError",
    "MangaViewsError",
    "MergeError",
    "Settings",
    "StagingCleanupError",
    "StorageError",
    "configure_logging",
    "get_logger",
    "get_settings",
]
