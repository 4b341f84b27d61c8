"""Names of the documents kept in a store."""

from pathlib import PurePosixPath

# Aggregate store
MANGA_JSON = "manga.json"
DAILY_VIEWS_JSON = "daily-views.json"

# Flat staging
PENDING_VIEWS_JSON = "pending-views.json"
PENDING_CHAPTER_VIEWS_JSON = "pending-chapter-views.json"


def staging_document(staging_folder: str, name: str) -> str:
    """Name of a document inside the staging folder, e.g. ``data/manga.json``."""
    return str(PurePosixPath(staging_folder) / name)
