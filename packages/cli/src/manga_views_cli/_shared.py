"""Shared helpers for CLI commands."""

from pathlib import Path
from typing import Optional

import typer

from manga_views_common import configure_logging, get_settings
from manga_views_storage import DocumentStore

STORE_DIR_OPTION = typer.Option(
    None,
    "--store-dir",
    "-d",
    help="Directory holding manga.json (default: STORE_DIR or current directory)",
)

DRY_RUN_OPTION = typer.Option(
    False,
    "--dry-run",
    help="Show what would be merged without writing or deleting anything",
)


def open_store(store_dir: Optional[Path]) -> DocumentStore:
    """Configure logging and open the document store for a command."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    return DocumentStore(store_dir or Path(settings.store_dir))
