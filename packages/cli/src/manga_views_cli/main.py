"""manga-views CLI - Main entry point.

Provides the ``manga-views`` command-line interface.

Usage:
    manga-views merge pending
    manga-views merge folder --staging-folder data
    manga-views merge all --store-dir /srv/manga
    manga-views status

Runs must not overlap; schedule them so one finishes before the next starts.
"""

import typer

from manga_views_cli.commands.merge import app as merge_app
from manga_views_cli.commands.status import status

# ---------------------------------------------------------------------------
# Root Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="manga-views",
    help="Fold pending manga view counts into manga.json and daily-views.json.",
    add_completion=False,
)

app.add_typer(merge_app, name="merge")
app.command(name="status")(status)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
