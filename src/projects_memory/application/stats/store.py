"""
Stats Store: Application layer owner of the persisted StatsPayload.

Every mutation follows load -> modify -> save against the DocumentStorage
port. Nothing is cached between calls: the underlying file may be
synchronized externally at any time.
"""

import logging
from collections.abc import Iterable
from typing import Any

from projects_memory.consts import SCHEMA_VERSION
from projects_memory.domain.constants import DEFAULT_SCORE
from projects_memory.domain.errors import StorageReadError, StorageWriteError
from projects_memory.domain.stats.models import ProjectStats, StatsPayload
from projects_memory.domain.stats.ports import DocumentStorage

logger = logging.getLogger(__name__)

# Top-level keys of the versioned document. Anything else at the top level
# is either host data or a legacy flat score.
RESERVED_KEYS = frozenset({"version", "settings", "stats", "migrations"})


def empty_document() -> dict[str, Any]:
    return {
        "version": SCHEMA_VERSION,
        "settings": {},
        "stats": StatsPayload().to_dict(),
        "migrations": {},
    }


def legacy_flat_scores(document: dict[str, Any]) -> dict[str, float]:
    """Item-keyed numeric scores stored at the top level by the legacy flat layout."""
    scores: dict[str, float] = {}
    for key, value in document.items():
        if key in RESERVED_KEYS or isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            scores[key] = float(value)
    return scores


class StatsStore:
    """
    Atomic load/modify/save of the StatsPayload.

    Read failures on the lenient path fall back to an empty payload so the
    selector keeps working; mutations use ``strict=True`` so a transient read
    failure can never overwrite durable data with an empty payload.
    """

    def __init__(self, storage: DocumentStorage, default_score: float = DEFAULT_SCORE):
        self.storage = storage
        self.default_score = default_score

    # ---------- Document level ----------

    def load_document(self, strict: bool = False) -> dict[str, Any]:
        """
        Return the raw persisted document.

        A missing document is created and persisted empty. With
        ``strict=False`` an unreadable document is logged and replaced by an
        empty one in memory only.
        """
        try:
            document = self.storage.read()
        except StorageReadError:
            if strict:
                raise
            logger.warning("Stats storage unreadable; continuing with an empty payload")
            return empty_document()

        if document is None:
            document = empty_document()
            try:
                self.storage.write(document)
                logger.info("Initialized empty stats document")
            except StorageWriteError:
                if strict:
                    raise
                logger.warning("Could not persist the initial stats document")

        return document

    def save_document(self, document: dict[str, Any]) -> None:
        document["version"] = SCHEMA_VERSION
        self.storage.write(document)

    def payload_from_document(self, document: dict[str, Any]) -> StatsPayload:
        stats = document.get("stats")
        if not isinstance(stats, dict):
            return StatsPayload()
        return StatsPayload.from_dict(stats, default_score=self.default_score)

    # ---------- Payload level ----------

    def load(self, strict: bool = False) -> StatsPayload:
        return self.payload_from_document(self.load_document(strict=strict))

    def save(self, payload: StatsPayload) -> None:
        """
        Persist ``payload``, preserving the document's other top-level keys.

        Raises:
            StorageReadError: The existing document could not be read for merging.
            StorageWriteError: The write failed. Objects already handed out are not rolled back.
        """
        document = self.storage.read() or empty_document()
        document["stats"] = payload.to_dict()
        self.save_document(document)

    def new_record(self) -> ProjectStats:
        return ProjectStats(current_score=self.default_score)

    def get_or_create(self, key: str) -> ProjectStats:
        return self.get_or_create_many([key])[key]

    def get_or_create_many(self, keys: Iterable[str]) -> dict[str, ProjectStats]:
        """
        Fetch records for ``keys`` with a single load, creating defaults for
        unknown keys and persisting once if anything was created.

        When the document cannot be read, default records are returned and
        nothing is persisted.
        """
        keys = list(keys)
        try:
            payload = self.load(strict=True)
        except StorageReadError:
            logger.warning("Stats storage unreadable; using default records")
            return {key: self.new_record() for key in keys}

        created = []
        result: dict[str, ProjectStats] = {}

        for key in keys:
            if key not in payload.projects:
                payload.projects[key] = self.new_record()
                created.append(key)
            result[key] = payload.projects[key]

        if created:
            logger.debug(f"Created stats records for {len(created)} new project(s)")
            self.save(payload)

        return result
