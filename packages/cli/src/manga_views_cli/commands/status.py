"""Status command: show pending staging data and current totals.

Read-only; nothing is merged, written or deleted.
"""

from pathlib import Path
from typing import Any, Optional

import typer

from manga_views_common import MalformedDocumentError, get_settings
from manga_views_storage import (
    DAILY_VIEWS_JSON,
    MANGA_JSON,
    PENDING_CHAPTER_VIEWS_JSON,
    PENDING_VIEWS_JSON,
    DocumentStore,
    staging_document,
)

from manga_views_cli._shared import STORE_DIR_OPTION, open_store


def _describe(store: DocumentStore, name: str) -> str:
    if not store.exists(name):
        return "absent"
    try:
        doc = store.read(name)
    except MalformedDocumentError:
        return "malformed"
    return _summarize(name, doc)


def _summarize(name: str, doc: Any) -> str:
    if not isinstance(doc, dict):
        return "present"
    if name == PENDING_VIEWS_JSON:
        return f"pendingViews={doc.get('pendingViews')}"
    if name == PENDING_CHAPTER_VIEWS_JSON:
        return f"{len(doc.get('chapters') or {})} chapters"
    if name == MANGA_JSON:
        manga = doc.get("manga")
        views = manga.get("views", 0) if isinstance(manga, dict) else None
        return f"views={views}, {len(doc.get('chapters') or {})} chapters"
    if name == DAILY_VIEWS_JSON:
        return f"{len(doc.get('dailyRecords') or {})} days, lastCleanup={doc.get('lastCleanup')}"
    if "totalViews" in doc:
        return f"totalViews={doc.get('totalViews')}, {len(doc.get('chapters') or {})} chapters"
    return f"{len(doc)} days"


def status(store_dir: Optional[Path] = STORE_DIR_OPTION):
    """Show aggregate totals and which staging documents are waiting.

    Examples:

        manga-views status --store-dir /srv/manga
    """
    store = open_store(store_dir)
    staging_folder = get_settings().staging_folder

    sections = [
        ("Aggregate store", [MANGA_JSON, DAILY_VIEWS_JSON]),
        ("Pending files", [PENDING_VIEWS_JSON, PENDING_CHAPTER_VIEWS_JSON]),
        (
            "Staging folder",
            [
                staging_document(staging_folder, MANGA_JSON),
                staging_document(staging_folder, DAILY_VIEWS_JSON),
            ],
        ),
    ]

    typer.echo(f"Store: {store.root}")
    for title, names in sections:
        typer.echo(f"\n{title}:")
        for name in names:
            typer.echo(f"  {name:40} {_describe(store, name)}")
