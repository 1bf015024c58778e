"""Runtime orchestration for one CLI-driven focus session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from contracts.ui_protocol import COMMAND_ABORT, COMMAND_ACKNOWLEDGE, STATE_IDLE
from focus import CountdownClock, FocusError, FocusSession, SessionSnapshot
from focus.constants import ACTION_FINISHED, ACTION_TICK, STATE_FINISHED
from focus.session import NotifierLike, ReconcilerLike
from records import RecordError, TaskCatalogLike
from server import UIServer

from .messages import (
    record_progress_message,
    session_status_message,
    task_list_message,
)
from .ui import RuntimeUIPublisher


async def _prompt_acknowledge() -> None:
    # An unanswered input() must not block interpreter exit.
    loop = asyncio.get_running_loop()
    pressed = loop.create_future()

    def _resolve() -> None:
        if not pressed.done():
            pressed.set_result(None)

    def _read() -> None:
        with contextlib.suppress(EOFError):
            input("Press Enter to acknowledge... ")
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_resolve)

    threading.Thread(target=_read, daemon=True, name="acknowledge-prompt").start()
    await pressed


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the session runner."""
    logger: logging.Logger
    username: str
    catalog: TaskCatalogLike
    reconciler: ReconcilerLike
    notifier: NotifierLike
    clock: CountdownClock
    ui_server: Optional[UIServer] = None
    wait_for_acknowledge: Callable[[], Awaitable[None]] = _prompt_acknowledge
    output: Callable[[str], None] = print


class SessionRunner:
    """Runs a session from start to acknowledgement and reports progress.

    Acknowledgement comes from whichever arrives first: the local prompt or an
    ``acknowledge`` command from the host shell. A host ``abort`` stops a
    running session without recording it.
    """
    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._finished = asyncio.Event()
        self._host_acknowledged = asyncio.Event()
        self._aborted = False
        self._ui = RuntimeUIPublisher(
            bootstrap.ui_server,
            listener=self._on_session_update,
        )
        self._session = FocusSession(
            username=bootstrap.username,
            catalog=bootstrap.catalog,
            reconciler=bootstrap.reconciler,
            notifier=bootstrap.notifier,
            clock=bootstrap.clock,
            publisher=self._ui,
            logger=logging.getLogger("focus.session"),
        )
        if bootstrap.ui_server is not None:
            bootstrap.ui_server.set_command_handler(self.handle_host_command)

    @property
    def session(self) -> FocusSession:
        return self._session

    async def list_tasks(self) -> int:
        try:
            tasks = await self._session.load_tasks()
        except RecordError as error:
            self._logger.error("Failed to load tasks: %s", error)
            return 1
        self._bootstrap.output(task_list_message(tasks))
        return 0

    async def run_session(self, task_name: str, minutes: int) -> int:
        self._ui.publish_state(STATE_IDLE, message="Ready")
        try:
            await self._session.load_tasks()
        except RecordError as error:
            self._logger.error("Failed to load tasks: %s", error)
            return 1

        self._finished.clear()
        self._aborted = False
        try:
            self._session.start(task_name, minutes)
        except FocusError as error:
            self._logger.error("Cannot start session: %s", error)
            return 2

        try:
            await self._finished.wait()
        except asyncio.CancelledError:
            self._session.abort()
            raise

        if self._aborted:
            self._bootstrap.output("Session aborted, nothing was recorded.")
            self._ui.publish_state(STATE_IDLE, message="Ready")
            return 1

        record = await self._session.wait_for_reconciliation()
        if record is not None:
            self._bootstrap.output(record_progress_message(record))
        else:
            self._bootstrap.output(
                f"Session finished but was not recorded: {self._session.last_error}"
            )

        await self._wait_for_acknowledge()
        self._session.acknowledge()
        self._ui.publish_state(STATE_IDLE, message="Ready")
        return 0 if record is not None else 1

    def handle_host_command(self, command: str, payload: dict[str, Any]) -> None:
        del payload
        if command == COMMAND_ACKNOWLEDGE:
            if self._session.state == STATE_FINISHED:
                self._host_acknowledged.set()
            return
        if command == COMMAND_ABORT:
            result = self._session.abort()
            if result.accepted:
                self._aborted = True
                self._finished.set()
            return
        self._logger.warning("Unhandled host command: %s", command)

    async def _wait_for_acknowledge(self) -> None:
        waiters = {
            asyncio.ensure_future(self._bootstrap.wait_for_acknowledge()),
            asyncio.ensure_future(self._host_acknowledged.wait()),
        }
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            self._host_acknowledged.clear()

    def _on_session_update(
        self,
        snapshot: SessionSnapshot,
        action: str,
        message: Optional[str],
    ) -> None:
        del message
        if action == ACTION_TICK:
            self._bootstrap.output(session_status_message(snapshot))
            return
        if action == ACTION_FINISHED:
            self._host_acknowledged.clear()
            self._bootstrap.output(session_status_message(snapshot))
            self._finished.set()
