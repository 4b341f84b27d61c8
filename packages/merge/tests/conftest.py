"""Pytest fixtures for merge tests."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from manga_views_storage import DocumentStore


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    """Empty document store rooted in a temp directory."""
    return DocumentStore(tmp_path)


@pytest.fixture
def put(tmp_path):
    """Write a JSON document (or raw text) into the store directory."""

    def _put(name: str, document: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(document, str):
            path.write_text(document)
        else:
            path.write_text(json.dumps(document, indent=2) + "\n")
        return path

    return _put


@pytest.fixture
def get(tmp_path):
    """Read a JSON document back from the store directory."""

    def _get(name: str) -> Any:
        return json.loads((tmp_path / name).read_text())

    return _get


@pytest.fixture
def manga_doc() -> dict:
    """Aggregate manga.json with two known chapters."""
    return {
        "manga": {"title": "Sample Manga", "views": 100},
        "chapters": {
            "ch1": {"title": "Chapter 1", "views": 10},
            "ch2": {"title": "Chapter 2", "views": 0},
        },
    }


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)
