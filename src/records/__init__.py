"""Per-day record reconciliation and the remote backend adapter."""

from .config import BackendConfig
from .contracts import Record, RecordKey, RecordStoreLike, Task, TaskCatalogLike
from .errors import (
    BackendConfigurationError,
    ConsistencyError,
    NotFoundError,
    RecordError,
    RecordStoreError,
)
from .http_backend import HttpBackend
from .reconciler import RecordReconciler

__all__ = [
    "BackendConfig",
    "BackendConfigurationError",
    "ConsistencyError",
    "HttpBackend",
    "NotFoundError",
    "Record",
    "RecordError",
    "RecordKey",
    "RecordReconciler",
    "RecordStoreError",
    "RecordStoreLike",
    "Task",
    "TaskCatalogLike",
]
