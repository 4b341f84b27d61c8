"""Merge commands for manga-views.

Commands:
    pending  Fold pending-views.json and pending-chapter-views.json into manga.json
    folder   Fold the staging folder (data/) into manga.json and daily-views.json
    all      Run both merges, flat files first
"""

from pathlib import Path
from typing import Optional

import typer

from manga_views_common import get_settings
from manga_views_merge import (
    FolderMergeResult,
    PendingMergeResult,
    merge_data_folder,
    merge_pending_views,
)
from manga_views_storage import DocumentStore

from manga_views_cli._shared import DRY_RUN_OPTION, STORE_DIR_OPTION, open_store

app = typer.Typer(help="Fold pending view counts into the aggregate store")


def format_pending_summary(result: PendingMergeResult) -> str:
    """Format the outcome of a flat-file merge for the console."""
    if not result.has_changes:
        return "No pending views to add."

    lines = []
    if result.dry_run:
        lines.append("Dry run - nothing written or deleted")
    lines.append("Summary:")
    lines.append(f"  - Manga views added:   {result.manga_views_added}")
    lines.append(f"  - Chapter views added: {result.chapter_views_added}")
    for chapter_id in result.unknown_chapters:
        lines.append(f"  ! Chapter {chapter_id} not found in manga.json (views dropped)")
    for name in result.deleted:
        lines.append(f"  - Deleted {name}")
    for name in result.delete_failures:
        lines.append(f"  ! Could not delete {name}")
    return "\n".join(lines)


def format_folder_summary(result: FolderMergeResult) -> str:
    """Format the outcome of a folder merge for the console."""
    folder = f"{result.staging_folder}/"
    if not result.folder_found:
        return f"No {folder} folder found - nothing to merge."

    lines = []
    if result.dry_run:
        lines.append("Dry run - nothing written or deleted")
    if not result.has_changes:
        lines.append("No changes were made.")
    for name in result.merged:
        lines.append(f"  - Merged into {name}")
    for name in result.skipped:
        lines.append(f"  - Skipped {name}")
    for name in result.failed:
        lines.append(f"  ! Failed to merge {name} (kept for next run)")
    if result.folder_deleted:
        lines.append(f"  - Deleted {folder}")
    return "\n".join(lines)


def run_pending(store: DocumentStore, dry_run: bool) -> int:
    """Run the flat-file merge and report it. Returns the exit code."""
    try:
        result = merge_pending_views(store, dry_run=dry_run)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1

    typer.echo(format_pending_summary(result))
    return 0


def run_folder(store: DocumentStore, staging_folder: str, dry_run: bool) -> int:
    """Run the folder merge and report it. Returns the exit code."""
    try:
        result = merge_data_folder(store, staging_folder=staging_folder, dry_run=dry_run)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1

    typer.echo(format_folder_summary(result))
    return 0


@app.command()
def pending(
    store_dir: Optional[Path] = STORE_DIR_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
):
    """Merge pending-views.json and pending-chapter-views.json into manga.json.

    Both pending files are deleted once manga.json has been saved.

    Examples:

        manga-views merge pending

        manga-views merge pending --store-dir /srv/manga --dry-run
    """
    code = run_pending(open_store(store_dir), dry_run)
    if code:
        raise typer.Exit(code)


@app.command()
def folder(
    store_dir: Optional[Path] = STORE_DIR_OPTION,
    staging_folder: Optional[str] = typer.Option(
        None,
        "--staging-folder",
        "-f",
        help="Staging folder inside the store (default: STAGING_FOLDER or data)",
    ),
    dry_run: bool = DRY_RUN_OPTION,
):
    """Merge the staging folder into manga.json and daily-views.json.

    The whole staging folder is deleted after a successful merge.

    Examples:

        manga-views merge folder

        manga-views merge folder --staging-folder incoming
    """
    store = open_store(store_dir)
    code = run_folder(store, staging_folder or get_settings().staging_folder, dry_run)
    if code:
        raise typer.Exit(code)


@app.command(name="all")
def merge_all(
    store_dir: Optional[Path] = STORE_DIR_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
):
    """Run the flat-file merge, then the folder merge.

    Exits non-zero if either merge fails.

    Examples:

        manga-views merge all
    """
    store = open_store(store_dir)
    typer.echo("== Pending files ==")
    pending_code = run_pending(store, dry_run)
    typer.echo("== Staging folder ==")
    folder_code = run_folder(store, get_settings().staging_folder, dry_run)

    code = max(pending_code, folder_code)
    if code:
        raise typer.Exit(code)
