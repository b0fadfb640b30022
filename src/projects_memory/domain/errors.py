"""Exception hierarchy shared by every layer."""


class ProjectsMemoryError(Exception):
    """Base class for all projects-memory errors."""


class NoCandidatesError(ProjectsMemoryError):
    """Raised when the eligible candidate list is empty."""

    def __init__(self, message: str = "No eligible projects to review."):
        super().__init__(message)


class StorageError(ProjectsMemoryError):
    """I/O failure on the persisted document."""


class StorageReadError(StorageError):
    pass


class StorageWriteError(StorageError):
    pass


class MigrationError(ProjectsMemoryError):
    """Malformed legacy data encountered while migrating a single record."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot migrate '{key}': {reason}")
