from __future__ import annotations

from typing import Optional


class RecordError(Exception):
    """Base exception for record reconciliation and remote store access."""


class NotFoundError(RecordError):
    """Raised when a task cannot be resolved in the task catalog."""


class ConsistencyError(RecordError):
    """Raised when more than one record exists for a (username, task, date) key."""


class RecordStoreError(RecordError):
    """Raised when the remote task catalog or record store cannot be reached."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.status is None or self.status >= 500


class BackendConfigurationError(RecordError):
    """Raised when the remote backend configuration is invalid."""
