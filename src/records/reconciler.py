"""Merges completed focus sessions into the remote per-day record."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Optional

from .contracts import Record, RecordKey, RecordStoreLike, TaskCatalogLike
from .errors import ConsistencyError, NotFoundError


class RecordReconciler:
    """Read-then-create-or-update against a store without transactions.

    ``reconcile`` is not idempotent: each call adds ``elapsed_minutes`` to the
    day's record, so callers must invoke it at most once per finished session.

    Steps 2-4 are not atomic. Two concurrent completions for the same
    (username, task, day) can both observe no record and both create one, or
    both read the same value and lose an increment. The store exposes no
    upsert or increment operation, so this race is accepted, not hidden.
    """

    def __init__(
        self,
        catalog: TaskCatalogLike,
        store: RecordStoreLike,
        *,
        username: str,
        today_fn: Optional[Callable[[], dt.date]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._catalog = catalog
        self._store = store
        self._username = username
        self._today = today_fn or dt.date.today
        self._logger = logger or logging.getLogger("records.reconciler")

    @property
    def username(self) -> str:
        return self._username

    async def reconcile(self, task_name: str, elapsed_minutes: int) -> Record:
        target_minutes = await self._resolve_target(task_name)
        today = self._today()

        existing = list(await self._store.get(task_name, self._username, today))

        if not existing:
            created = await self._store.add(
                Record(
                    task_name=task_name,
                    date=today,
                    username=self._username,
                    accumulated_minutes=int(elapsed_minutes),
                    target_minutes=target_minutes,
                )
            )
            self._logger.info(
                "Record created: task=%s date=%s minutes=%s",
                task_name,
                today,
                created.accumulated_minutes,
            )
            return created

        if len(existing) == 1:
            current = existing[0]
            accumulated = current.accumulated_minutes + int(elapsed_minutes)
            updated = await self._store.update(
                RecordKey(task_name=task_name, date=today, username=self._username),
                {"accumulated_minutes": accumulated},
            )
            self._logger.info(
                "Record updated: task=%s date=%s minutes=%s->%s",
                task_name,
                today,
                current.accumulated_minutes,
                updated.accumulated_minutes,
            )
            return updated

        # Duplicates were created upstream; repairing them here could lose minutes.
        raise ConsistencyError(
            f"Found {len(existing)} records for task={task_name!r} "
            f"username={self._username!r} date={today.isoformat()}"
        )

    async def _resolve_target(self, task_name: str) -> int:
        tasks = await self._catalog.list(self._username)
        for task in tasks:
            if task.name == task_name:
                return task.target_minutes
        raise NotFoundError(f"Task not found in catalog: {task_name!r}")
