"""Focus session state machine driven by the countdown clock."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from records.contracts import Record, Task, TaskCatalogLike

from .clock import ClockHandle, CountdownClock
from .constants import (
    ACTION_ABORT,
    ACTION_ACKNOWLEDGE,
    ACTION_FINISHED,
    ACTION_RECONCILED,
    ACTION_START,
    ACTION_TICK,
    REASON_ABORTED,
    REASON_ACKNOWLEDGED,
    REASON_FINISHED,
    REASON_NOT_FINISHED,
    REASON_NOT_RUNNING,
    REASON_RECONCILE_FAILED,
    REASON_RECONCILED,
    REASON_STARTED,
    REASON_TICK,
    STATE_FINISHED,
    STATE_IDLE,
    STATE_RUNNING,
    FocusDuration,
)
from .errors import BusyError, ValidationError

SessionState = Literal["idle", "running", "finished"]
SessionAction = Literal["start", "acknowledge", "abort"]


class ReconcilerLike(Protocol):
    async def reconcile(self, task_name: str, elapsed_minutes: int) -> Record:
        ...


class NotifierLike(Protocol):
    def notify(self) -> None:
        ...

    def stop(self) -> None:
        ...


class SessionPublisherLike(Protocol):
    def publish_session_update(
        self,
        snapshot: "SessionSnapshot",
        *,
        action: str,
        accepted: Optional[bool] = None,
        reason: str = "",
        message: Optional[str] = None,
    ) -> None:
        ...

    def publish_error(self, message: str, **payload: Any) -> None:
        ...


@dataclass(frozen=True)
class SessionContext:
    """Everything one running or finished session needs, owned by the machine."""
    username: str
    task_name: str
    planned_minutes: int
    end_timestamp: float


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable session view exposed to publishers and the CLI."""
    state: SessionState
    task_name: Optional[str]
    planned_minutes: Optional[int]
    remaining_seconds: int
    end_timestamp: Optional[float]

    @property
    def is_active(self) -> bool:
        return self.state == STATE_RUNNING


@dataclass(frozen=True)
class SessionActionResult:
    """Result envelope returned after applying a session action."""
    action: SessionAction
    accepted: bool
    reason: str
    snapshot: SessionSnapshot


class FocusSession:
    """Idle -> running -> finished -> idle, with exactly-once completion effects.

    Runs on a single asyncio loop. Reconciliation is scheduled as a task and a
    new ``start`` is refused with ``BusyError`` until it has settled.
    """

    def __init__(
        self,
        *,
        username: str,
        catalog: TaskCatalogLike,
        reconciler: ReconcilerLike,
        notifier: NotifierLike,
        clock: Optional[CountdownClock] = None,
        publisher: Optional[SessionPublisherLike] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._username = username
        self._catalog = catalog
        self._reconciler = reconciler
        self._notifier = notifier
        self._clock = clock or CountdownClock()
        self._publisher = publisher
        self._logger = logger or logging.getLogger("focus.session")

        self._state: SessionState = STATE_IDLE
        self._context: Optional[SessionContext] = None
        self._handle: Optional[ClockHandle] = None
        self._remaining_seconds = 0
        self._tasks: dict[str, Task] = {}
        self._reconciliation: Optional[asyncio.Task[Optional[Record]]] = None
        self._last_record: Optional[Record] = None
        self._last_error: Optional[Exception] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def username(self) -> str:
        return self._username

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    @property
    def is_reconciling(self) -> bool:
        return self._reconciliation is not None and not self._reconciliation.done()

    @property
    def last_record(self) -> Optional[Record]:
        return self._last_record

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    async def load_tasks(self) -> list[Task]:
        """Fetch the task catalog used to validate ``start``."""
        tasks = await self._catalog.list(self._username)
        self._tasks = {task.name: task for task in tasks}
        self._logger.info("Loaded %d task(s) for %s", len(self._tasks), self._username)
        return list(tasks)

    def snapshot(self) -> SessionSnapshot:
        context = self._context
        return SessionSnapshot(
            state=self._state,
            task_name=context.task_name if context else None,
            planned_minutes=context.planned_minutes if context else None,
            remaining_seconds=self._remaining_seconds,
            end_timestamp=context.end_timestamp if context else None,
        )

    def start(self, task_name: Optional[str], minutes: Any) -> SessionActionResult:
        name = (task_name or "").strip()
        if not name:
            raise ValidationError("A task must be selected before starting.")
        if name not in self._tasks:
            raise ValidationError(f"Unknown task: {name!r}")
        duration = _coerce_duration(minutes)

        if self._state != STATE_IDLE:
            raise BusyError(f"Cannot start a session while {self._state}.")
        if self.is_reconciling:
            raise BusyError("The previous session is still being recorded.")

        end_timestamp = self._clock.now() + int(duration) * 60
        self._context = SessionContext(
            username=self._username,
            task_name=name,
            planned_minutes=int(duration),
            end_timestamp=end_timestamp,
        )
        self._state = STATE_RUNNING
        self._remaining_seconds = int(duration) * 60
        self._last_error = None
        self._handle = self._clock.start(end_timestamp, self._on_tick)
        self._logger.info(
            "Session started: task=%s duration=%smin",
            name,
            int(duration),
        )
        return self._result(ACTION_START, True, REASON_STARTED)

    def acknowledge(self) -> SessionActionResult:
        if self._state != STATE_FINISHED:
            return self._result(ACTION_ACKNOWLEDGE, False, REASON_NOT_FINISHED)

        self._notifier.stop()
        self._state = STATE_IDLE
        self._context = None
        self._remaining_seconds = 0
        self._logger.info("Session acknowledged")
        return self._result(ACTION_ACKNOWLEDGE, True, REASON_ACKNOWLEDGED)

    def abort(self) -> SessionActionResult:
        """Stop a running session without recording it or notifying."""
        if self._state != STATE_RUNNING:
            return self._result(ACTION_ABORT, False, REASON_NOT_RUNNING)

        CountdownClock.cancel(self._handle)
        self._handle = None
        task_name = self._context.task_name if self._context else None
        self._state = STATE_IDLE
        self._context = None
        self._remaining_seconds = 0
        self._logger.info("Session aborted: task=%s", task_name)
        return self._result(ACTION_ABORT, True, REASON_ABORTED)

    async def wait_for_reconciliation(self) -> Optional[Record]:
        """Wait for the outstanding reconciliation; ``None`` if it failed or none ran."""
        if self._reconciliation is None:
            return None
        # Cancelling the waiter must not interrupt a write in flight.
        return await asyncio.shield(self._reconciliation)

    def _on_tick(self, remaining: int, handle: ClockHandle) -> None:
        if handle is not self._handle or self._state != STATE_RUNNING:
            return

        if remaining > 0:
            if remaining != self._remaining_seconds:
                self._remaining_seconds = remaining
                self._publish(ACTION_TICK, reason=REASON_TICK)
            return

        # Check-and-set on the running -> finished edge; later zero ticks bail out above.
        self._state = STATE_FINISHED
        self._remaining_seconds = 0
        handle.cancel()
        self._handle = None

        context = self._context
        if context is None:
            return
        self._logger.info(
            "Session finished: task=%s duration=%smin",
            context.task_name,
            context.planned_minutes,
        )
        self._reconciliation = asyncio.get_running_loop().create_task(
            self._reconcile(context)
        )
        try:
            self._notifier.notify()
        except Exception:
            self._logger.exception("Completion notifier failed: task=%s", context.task_name)
        self._publish(ACTION_FINISHED, reason=REASON_FINISHED)

    async def _reconcile(self, context: SessionContext) -> Optional[Record]:
        try:
            record = await self._reconciler.reconcile(
                context.task_name,
                context.planned_minutes,
            )
        except Exception as error:
            self._last_error = error
            self._logger.error(
                "Reconciliation failed: task=%s minutes=%s error=%s",
                context.task_name,
                context.planned_minutes,
                error,
            )
            if self._publisher:
                try:
                    self._publisher.publish_error(
                        f"Failed to record session: {error}",
                        reason=REASON_RECONCILE_FAILED,
                        task=context.task_name,
                    )
                except Exception:
                    self._logger.exception("Session publisher failed: action=error")
            return None

        self._last_record = record
        self._publish(
            ACTION_RECONCILED,
            reason=REASON_RECONCILED,
            message=(
                f"{record.task_name}: {record.accumulated_minutes}/"
                f"{record.target_minutes} min today"
            ),
        )
        return record

    def _publish(
        self,
        action: str,
        *,
        reason: str,
        message: Optional[str] = None,
    ) -> None:
        self._emit(self.snapshot(), action, True, reason, message)

    def _emit(
        self,
        snapshot: SessionSnapshot,
        action: str,
        accepted: bool,
        reason: str,
        message: Optional[str] = None,
    ) -> None:
        if not self._publisher:
            return
        try:
            self._publisher.publish_session_update(
                snapshot,
                action=action,
                accepted=accepted,
                reason=reason,
                message=message,
            )
        except Exception:
            self._logger.exception("Session publisher failed: action=%s", action)

    def _result(
        self,
        action: SessionAction,
        accepted: bool,
        reason: str,
    ) -> SessionActionResult:
        result = SessionActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self.snapshot(),
        )
        self._emit(result.snapshot, action, accepted, reason)
        return result


def _coerce_duration(minutes: Any) -> FocusDuration:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError(f"A duration in minutes must be selected, got: {minutes!r}")
    try:
        return FocusDuration(minutes)
    except ValueError as error:
        allowed = ", ".join(str(int(item)) for item in FocusDuration)
        raise ValidationError(
            f"Duration must be one of {allowed} minutes, got: {minutes}"
        ) from error
