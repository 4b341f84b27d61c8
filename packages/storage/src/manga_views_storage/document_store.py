"""DocumentStore - whole-document JSON access for the aggregate and staging files.

Documents are addressed by name relative to the store root, e.g.
``manga.json`` or ``data/daily-views.json``. Every document is small and is
read and written whole.

Example:
    >>> store = DocumentStore(Path("/srv/manga"))
    >>> manga = store.read("manga.json")
    >>> if manga is not None:
    ...     manga["manga"]["views"] += 1
    ...     store.write("manga.json", manga)
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from manga_views_common import MalformedDocumentError, StorageError, get_logger

logger = get_logger(__name__)


class DocumentStore:
    """File-backed store of JSON documents under a single root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path(self, name: str) -> Path:
        """Absolute path of a named document or folder."""
        return self.root / name

    def exists(self, name: str) -> bool:
        """Check whether a document or folder exists."""
        return self.path(name).exists()

    def read(self, name: str) -> Optional[Any]:
        """Read and parse a named document.

        Args:
            name: Document name relative to the store root

        Returns:
            The parsed JSON value, or None if the file does not exist.

        Raises:
            MalformedDocumentError: If the file is not valid UTF-8 JSON
            StorageError: On any other I/O failure
        """
        path = self.path(name)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("document_not_found", name=name)
            return None
        except UnicodeDecodeError as e:
            logger.error("document_parse_failed", name=name, error=str(e))
            raise MalformedDocumentError(name, str(e)) from e
        except OSError as e:
            logger.error("document_read_failed", name=name, error=str(e))
            raise StorageError(f"Failed to read {name}: {e}") from e

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("document_parse_failed", name=name, error=str(e))
            raise MalformedDocumentError(name, str(e)) from e

    def write(self, name: str, document: Any) -> Path:
        """Serialize and replace a named document.

        The content is written to a temporary file next to the target and
        renamed over it, so a reader sees either the old or the new document.

        Args:
            name: Document name relative to the store root
            document: JSON-serializable value

        Returns:
            Path of the written document.

        Raises:
            StorageError: If the document cannot be serialized or written
        """
        path = self.path(name)
        try:
            content = json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot serialize {name}: {e}") from e

        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error("document_write_failed", name=name, error=str(e))
            raise StorageError(f"Failed to write {name}: {e}") from e

        logger.debug("document_written", name=name, bytes=len(content))
        return path

    def delete_file(self, name: str) -> bool:
        """Delete a single file.

        Returns:
            True if the file was deleted, False if it did not exist.

        Raises:
            StorageError: If the file exists but cannot be removed
        """
        path = self.path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("file_delete_skipped", name=name, reason="not_found")
            return False
        except OSError as e:
            logger.error("file_delete_failed", name=name, error=str(e))
            raise StorageError(f"Failed to delete {name}: {e}") from e

        logger.info("file_deleted", name=name)
        return True

    def delete_folder(self, name: str) -> bool:
        """Delete a folder and everything in it.

        Returns:
            True if the folder was deleted, False if it did not exist.

        Raises:
            StorageError: If the folder exists but cannot be removed
        """
        path = self.path(name)
        if not path.exists():
            logger.info("folder_delete_skipped", name=name, reason="not_found")
            return False

        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.error("folder_delete_failed", name=name, error=str(e))
            raise StorageError(f"Failed to delete folder {name}: {e}") from e

        logger.info("folder_deleted", name=name)
        return True
