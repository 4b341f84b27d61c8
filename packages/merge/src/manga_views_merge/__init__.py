"""manga-views merge - fold pending view counts into the aggregate store.

This package provides:
- fold_pending_views / merge_pending_views: flat-file pipeline
  (pending-views.json + pending-chapter-views.json -> manga.json)
- merge_manga_snapshot / merge_daily_views / merge_data_folder: folder
  pipeline (data/manga.json + data/daily-views.json -> manga.json +
  daily-views.json)

Runs are assumed to be serialized by the caller; there is no locking
between concurrent invocations.
"""

from manga_views_merge.folder import (
    FolderMergeResult,
    format_instant,
    merge_daily_views,
    merge_data_folder,
    merge_manga_snapshot,
    normalize_daily_record,
)
from manga_views_merge.pending import (
    PendingFold,
    PendingMergeResult,
    fold_pending_views,
    merge_pending_views,
)

__all__ = [
    "FolderMergeResult",
    "PendingFold",
    "PendingMergeResult",
    "fold_pending_views",
    "format_instant",
    "merge_daily_views",
    "merge_data_folder",
    "merge_manga_snapshot",
    "merge_pending_views",
    "normalize_daily_record",
]
