"""In-memory DocumentStorage, used by ephemeral servers and tests."""

import copy
from typing import Any

from projects_memory.domain.stats.ports import DocumentStorage


class InMemoryStorage(DocumentStorage):
    def __init__(self, document: dict[str, Any] | None = None):
        self._document = copy.deepcopy(document) if document is not None else None
        self.write_count = 0

    def read(self) -> dict[str, Any] | None:
        # Copies keep callers from mutating the stored document without a write.
        return copy.deepcopy(self._document)

    def write(self, document: dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)
        self.write_count += 1
