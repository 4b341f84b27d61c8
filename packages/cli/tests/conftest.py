"""Pytest fixtures for CLI tests."""

import json

import pytest
import structlog
from typer.testing import CliRunner

from manga_views_common import get_settings


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Run every command from an empty directory with default settings."""
    for var in ("STORE_DIR", "STAGING_FOLDER", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def store_dir(tmp_path):
    """Store directory with manga.json and daily-views.json."""
    root = tmp_path / "store"
    root.mkdir()
    (root / "manga.json").write_text(
        json.dumps({"manga": {"views": 100}, "chapters": {"ch1": {"views": 10}}})
    )
    (root / "daily-views.json").write_text(json.dumps({"dailyRecords": {}}))
    return root
