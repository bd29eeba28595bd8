"""Errors raised by the planner stores."""


class StoreError(Exception):
    """Base exception for recoverable store errors."""

    def __init__(self, message: str, entity: str | None = None):
        super().__init__(message)
        self.message = message
        self.entity = entity


class NotFoundError(StoreError):
    """Referenced plan, execution or item does not exist (or is hidden)."""

    pass


class ConflictError(StoreError):
    """A state-machine guard rejected the operation."""

    pass


class SnapshotValidationError(StoreError):
    """Backup document is malformed or inconsistent."""

    def __init__(self, message: str):
        super().__init__(message, entity="Snapshot")
