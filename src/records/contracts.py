"""Record types and collaborator protocols used by reconciliation."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class Task:
    """Catalog entry: a task name and its daily target in minutes."""
    name: str
    target_minutes: int


@dataclass(frozen=True)
class RecordKey:
    """Natural key of a per-day record."""
    task_name: str
    date: dt.date
    username: str


@dataclass(frozen=True)
class Record:
    """Accumulated focus minutes for one user, task, and day."""
    task_name: str
    date: dt.date
    username: str
    accumulated_minutes: int
    target_minutes: int
    id: Optional[str] = None

    @property
    def key(self) -> RecordKey:
        return RecordKey(
            task_name=self.task_name,
            date=self.date,
            username=self.username,
        )


def format_date(value: dt.date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_date(raw: str) -> dt.date:
    return dt.datetime.strptime(raw, DATE_FORMAT).date()


class TaskCatalogLike(Protocol):
    """Read-only source of tasks available to a user."""
    async def list(self, username: str) -> list[Task]:
        ...


class RecordStoreLike(Protocol):
    """Remote store holding per-day records.

    The store does not enforce uniqueness of (username, task, date) and offers
    no atomic upsert.
    """
    async def get(
        self,
        task_name: str,
        username: str,
        date: dt.date,
    ) -> Sequence[Record]:
        ...

    async def add(self, record: Record) -> Record:
        ...

    async def update(self, key: RecordKey, patch: Mapping[str, Any]) -> Record:
        ...
