"""
Ports (interfaces) for statistics storage and candidate supply.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import Candidate


class DocumentStorage(ABC):
    """
    Port for reading and writing the persisted JSON document.

    Implementations:
        - JsonFileStorage: A JSON file on disk, replaced atomically.
        - InMemoryStorage: A dict held in memory (ephemeral servers, tests).
    """

    @abstractmethod
    def read(self) -> dict[str, Any] | None:
        """
        Return the stored document, or None if nothing has been stored yet.

        Raises:
            StorageReadError: The medium exists but cannot be read or parsed.
        """
        pass

    @abstractmethod
    def write(self, document: dict[str, Any]) -> None:
        """
        Replace the stored document.

        Raises:
            StorageWriteError: The document could not be persisted.
        """
        pass


class CandidateSource(ABC):
    """
    Port for the host's candidate supply.

    Results are already filtered for tag membership and archive exclusion.
    """

    @abstractmethod
    def list_eligible_items(self) -> list[Candidate]:
        pass

    @abstractmethod
    def archive(self, key: str) -> None:
        """
        Remove an item from future candidacy (the ``finished`` action).

        Raises:
            OSError: The item could not be rewritten.
            ValueError: The item cannot be archived in its current state.
        """
        pass
