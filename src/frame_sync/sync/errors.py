"""Exceptions raised by the sync engine."""


class SyncError(Exception):
    """Base class for sync engine errors."""


class ConfigurationError(SyncError):
    """The working copy is not the repository it is configured to be.

    Attributes:
        errors: Every problem found, so they can be fixed together.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Configuration error")


class SyncBusyError(SyncError):
    """Another sync transaction holds the guard."""

    def __init__(self) -> None:
        super().__init__("Sync already in progress")


class ResolutionError(SyncError):
    """Conflict resolution could not leave a clean working tree."""
