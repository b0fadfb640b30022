"""
JSON File Storage: Infrastructure adapter for the persisted document.

Implements DocumentStorage on a single JSON file. Writes go to a sibling
temporary file which then replaces the target, so readers never observe
a half-written document.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from projects_memory.domain.errors import StorageReadError, StorageWriteError
from projects_memory.domain.stats.ports import DocumentStorage

logger = logging.getLogger(__name__)


class JsonFileStorage(DocumentStorage):
    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to read {self.path}: {e}")
            raise StorageReadError(f"Cannot read {self.path}: {e}") from e

        if not text.strip():
            return None

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt JSON in {self.path}: {e}")
            raise StorageReadError(f"Cannot parse {self.path}: {e}") from e

        if not isinstance(data, dict):
            logger.warning(f"Unexpected JSON type in {self.path}: {type(data).__name__}")
            raise StorageReadError(f"{self.path} does not contain a JSON object")
        return data

    def write(self, document: dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise StorageWriteError(f"Cannot write {self.path}: {e}") from e
