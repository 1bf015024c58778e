import asyncio
import datetime as dt
import logging
import unittest
from typing import Optional

from focus import BusyError, FocusDuration, FocusSession, ValidationError
from records import ConsistencyError, Record, Task


class _ManualHandle:
    def __init__(self):
        self.cancel_calls = 0

    def cancel(self) -> None:
        self.cancel_calls += 1


class _ManualClock:
    """Clock double whose ticks are fired by the test, even after cancellation."""

    def __init__(self, now: float = 1000.0):
        self._now = now
        self.started: list[float] = []
        self.handle: Optional[_ManualHandle] = None
        self._on_tick = None

    def now(self) -> float:
        return self._now

    def start(self, end_timestamp, on_tick):
        self.started.append(end_timestamp)
        self.handle = _ManualHandle()
        self._on_tick = on_tick
        return self.handle

    def tick(self, remaining: int) -> None:
        self._on_tick(remaining, self.handle)


class _CatalogStub:
    def __init__(self, tasks):
        self.tasks = list(tasks)
        self.calls: list[str] = []

    async def list(self, username: str):
        self.calls.append(username)
        return list(self.tasks)


class _ReconcilerStub:
    def __init__(self, *, error: Optional[Exception] = None):
        self.calls: list[tuple[str, int]] = []
        self.error = error
        self.gate: Optional[asyncio.Event] = None

    async def reconcile(self, task_name: str, elapsed_minutes: int) -> Record:
        self.calls.append((task_name, elapsed_minutes))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return Record(
            task_name=task_name,
            date=dt.date(2026, 3, 1),
            username="tomcat",
            accumulated_minutes=elapsed_minutes,
            target_minutes=25,
        )


class _NotifierStub:
    def __init__(self):
        self.notify_calls = 0
        self.stop_calls = 0

    def notify(self) -> None:
        self.notify_calls += 1

    def stop(self) -> None:
        self.stop_calls += 1


class _PublisherStub:
    def __init__(self):
        self.updates: list[tuple[str, str, Optional[bool], str]] = []
        self.errors: list[str] = []

    def publish_session_update(self, snapshot, *, action, accepted=None, reason="", message=None):
        self.updates.append((action, snapshot.state, accepted, reason))

    def publish_error(self, message: str, **payload) -> None:
        self.errors.append(message)


class FocusSessionStateFlowTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.clock = _ManualClock(now=1000.0)
        self.catalog = _CatalogStub([Task("Read", 25), Task("Write", 50)])
        self.reconciler = _ReconcilerStub()
        self.notifier = _NotifierStub()
        self.publisher = _PublisherStub()
        self.session = FocusSession(
            username="tomcat",
            catalog=self.catalog,
            reconciler=self.reconciler,
            notifier=self.notifier,
            clock=self.clock,
            publisher=self.publisher,
            logger=logging.getLogger("test"),
        )
        await self.session.load_tasks()
        self.catalog.calls.clear()

    async def test_start_arms_clock_with_absolute_end(self) -> None:
        result = self.session.start("Read", FocusDuration.TWENTY_FIVE)

        self.assertTrue(result.accepted)
        self.assertEqual("running", result.snapshot.state)
        self.assertEqual("Read", result.snapshot.task_name)
        self.assertEqual(25, result.snapshot.planned_minutes)
        self.assertEqual(1500, result.snapshot.remaining_seconds)
        self.assertEqual([1000.0 + 25 * 60], self.clock.started)

    async def test_invalid_start_leaves_idle_without_network_calls(self) -> None:
        cases = [
            ("", 25),
            ("   ", 25),
            (None, 25),
            ("Unknown", 25),
            ("Read", 0),
            ("Read", None),
            ("Read", 7),
            ("Read", "25"),
            ("Read", True),
        ]
        for task_name, minutes in cases:
            with self.subTest(task=task_name, minutes=minutes):
                with self.assertRaises(ValidationError):
                    self.session.start(task_name, minutes)
                self.assertEqual("idle", self.session.state)

        self.assertEqual([], self.clock.started)
        self.assertEqual([], self.catalog.calls)
        self.assertEqual([], self.reconciler.calls)
        self.assertEqual(0, self.notifier.notify_calls)

    async def test_zero_crossing_fires_reconcile_and_notify_exactly_once(self) -> None:
        self.session.start("Read", 25)
        for remaining in (3, 2, 1):
            self.clock.tick(remaining)
        for _ in range(1000):
            self.clock.tick(0)

        record = await self.session.wait_for_reconciliation()

        self.assertEqual("finished", self.session.state)
        self.assertEqual([("Read", 25)], self.reconciler.calls)
        self.assertEqual(1, self.notifier.notify_calls)
        self.assertEqual(1, self.clock.handle.cancel_calls)
        self.assertIsNotNone(record)
        self.assertEqual(record, self.session.last_record)

    async def test_ticks_publish_only_when_remaining_changes(self) -> None:
        self.session.start("Read", 5)
        self.publisher.updates.clear()
        for remaining in (299, 299, 299, 298):
            self.clock.tick(remaining)

        ticks = [update for update in self.publisher.updates if update[0] == "tick"]
        self.assertEqual(2, len(ticks))
        self.assertEqual(298, self.session.snapshot().remaining_seconds)

    async def test_acknowledge_returns_to_idle_and_stops_playback(self) -> None:
        self.session.start("Read", 25)
        self.clock.tick(0)
        await self.session.wait_for_reconciliation()

        result = self.session.acknowledge()

        self.assertTrue(result.accepted)
        self.assertEqual("idle", result.snapshot.state)
        self.assertIsNone(result.snapshot.task_name)
        self.assertEqual(1, self.notifier.stop_calls)

    async def test_acknowledge_rejected_unless_finished(self) -> None:
        idle_result = self.session.acknowledge()
        self.session.start("Read", 25)
        running_result = self.session.acknowledge()

        self.assertFalse(idle_result.accepted)
        self.assertEqual("not_finished", idle_result.reason)
        self.assertFalse(running_result.accepted)
        self.assertEqual("running", running_result.snapshot.state)
        self.assertEqual(0, self.notifier.stop_calls)

    async def test_start_while_running_is_busy(self) -> None:
        self.session.start("Read", 25)
        with self.assertRaises(BusyError):
            self.session.start("Write", 10)
        self.assertEqual(1, len(self.clock.started))

    async def test_start_is_busy_until_previous_reconciliation_settles(self) -> None:
        self.reconciler.gate = asyncio.Event()
        self.session.start("Read", 25)
        self.clock.tick(0)
        await asyncio.sleep(0)
        self.session.acknowledge()

        self.assertTrue(self.session.is_reconciling)
        with self.assertRaises(BusyError):
            self.session.start("Read", 10)
        self.assertEqual("idle", self.session.state)

        self.reconciler.gate.set()
        await self.session.wait_for_reconciliation()
        result = self.session.start("Read", 10)

        self.assertTrue(result.accepted)

    async def test_failed_reconciliation_keeps_machine_operable(self) -> None:
        self.reconciler.error = ConsistencyError("duplicate records")
        self.session.start("Read", 25)
        self.clock.tick(0)

        record = await self.session.wait_for_reconciliation()

        self.assertIsNone(record)
        self.assertIsInstance(self.session.last_error, ConsistencyError)
        self.assertEqual(1, len(self.publisher.errors))
        self.assertEqual(1, self.notifier.notify_calls)
        self.assertTrue(self.session.acknowledge().accepted)
        self.assertTrue(self.session.start("Read", 5).accepted)

    async def test_abort_skips_reconcile_and_notify(self) -> None:
        self.session.start("Read", 25)
        self.clock.tick(100)
        result = self.session.abort()
        for _ in range(10):
            self.clock.tick(0)
        await asyncio.sleep(0)

        self.assertTrue(result.accepted)
        self.assertEqual("idle", self.session.state)
        self.assertEqual(1, self.clock.handle.cancel_calls)
        self.assertEqual([], self.reconciler.calls)
        self.assertEqual(0, self.notifier.notify_calls)
        self.assertIsNone(await self.session.wait_for_reconciliation())

    async def test_abort_rejected_when_not_running(self) -> None:
        result = self.session.abort()
        self.assertFalse(result.accepted)
        self.assertEqual("not_running", result.reason)

    async def test_stale_handle_ticks_are_ignored(self) -> None:
        self.session.start("Read", 25)
        stale_handle = self.clock.handle
        self.session.abort()
        self.session.start("Write", 10)

        self.session._on_tick(0, stale_handle)

        self.assertEqual("running", self.session.state)
        self.assertEqual(0, self.notifier.notify_calls)

    async def test_load_tasks_uses_session_username(self) -> None:
        tasks = await self.session.load_tasks()

        self.assertEqual(["tomcat"], self.catalog.calls)
        self.assertEqual(["Read", "Write"], [task.name for task in tasks])

    async def test_completion_effects_survive_a_failing_publisher(self) -> None:
        class _FailingPublisher(_PublisherStub):
            def publish_session_update(self, snapshot, *, action, **kwargs):
                if action == "finished":
                    raise RuntimeError("host shell gone")
                super().publish_session_update(snapshot, action=action, **kwargs)

        session = FocusSession(
            username="tomcat",
            catalog=self.catalog,
            reconciler=self.reconciler,
            notifier=self.notifier,
            clock=self.clock,
            publisher=_FailingPublisher(),
            logger=logging.getLogger("test.session"),
        )
        await session.load_tasks()
        session.start("Read", 25)

        with self.assertLogs("test.session", level="ERROR"):
            self.clock.tick(0)
        record = await session.wait_for_reconciliation()

        self.assertEqual("finished", session.state)
        self.assertEqual([("Read", 25)], self.reconciler.calls)
        self.assertEqual(1, self.notifier.notify_calls)
        self.assertIsNotNone(record)

    async def test_cancelled_waiter_does_not_interrupt_reconciliation(self) -> None:
        self.reconciler.gate = asyncio.Event()
        self.session.start("Read", 25)
        self.clock.tick(0)
        waiter = asyncio.ensure_future(self.session.wait_for_reconciliation())
        await asyncio.sleep(0)

        waiter.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await waiter
        self.assertTrue(self.session.is_reconciling)

        self.reconciler.gate.set()
        record = await self.session.wait_for_reconciliation()

        self.assertIsNotNone(record)
        self.assertEqual(record, self.session.last_record)


if __name__ == "__main__":
    unittest.main()
