import dataclasses
import datetime as dt
import logging
import unittest

from records import ConsistencyError, NotFoundError, Record, RecordKey, RecordReconciler, Task

_TODAY = dt.date(2026, 3, 1)


class _CatalogStub:
    def __init__(self, tasks: list[Task]):
        self._tasks = list(tasks)
        self.calls: list[str] = []

    async def list(self, username: str) -> list[Task]:
        self.calls.append(username)
        return list(self._tasks)


class _StoreStub:
    def __init__(self, records: list[Record] | None = None):
        self.records = list(records or [])
        self.get_calls: list[tuple[str, str, dt.date]] = []
        self.add_calls: list[Record] = []
        self.update_calls: list[tuple[RecordKey, dict]] = []

    async def get(self, task_name: str, username: str, date: dt.date) -> list[Record]:
        self.get_calls.append((task_name, username, date))
        return [
            record
            for record in self.records
            if record.key == RecordKey(task_name=task_name, date=date, username=username)
        ]

    async def add(self, record: Record) -> Record:
        self.add_calls.append(record)
        created = dataclasses.replace(record, id=f"rec-{len(self.records) + 1}")
        self.records.append(created)
        return created

    async def update(self, key: RecordKey, patch) -> Record:
        self.update_calls.append((key, dict(patch)))
        for index, record in enumerate(self.records):
            if record.key == key:
                updated = dataclasses.replace(
                    record,
                    accumulated_minutes=patch["accumulated_minutes"],
                )
                self.records[index] = updated
                return updated
        raise AssertionError(f"update for missing record {key}")


def _record(minutes: int, record_id: str = "rec-1") -> Record:
    return Record(
        id=record_id,
        task_name="Read",
        date=_TODAY,
        username="tomcat",
        accumulated_minutes=minutes,
        target_minutes=25,
    )


class RecordReconcilerTests(unittest.IsolatedAsyncioTestCase):
    def _reconciler(self, store: _StoreStub, catalog: _CatalogStub | None = None) -> RecordReconciler:
        return RecordReconciler(
            catalog or _CatalogStub([Task("Read", 25), Task("Write", 50)]),
            store,
            username="tomcat",
            today_fn=lambda: _TODAY,
            logger=logging.getLogger("test"),
        )

    async def test_creates_record_when_none_exists_for_today(self) -> None:
        store = _StoreStub()

        record = await self._reconciler(store).reconcile("Read", 25)

        self.assertEqual(1, len(store.add_calls))
        self.assertEqual([], store.update_calls)
        self.assertEqual(25, record.accumulated_minutes)
        self.assertEqual(25, record.target_minutes)
        self.assertEqual(_TODAY, record.date)
        self.assertEqual("tomcat", record.username)
        self.assertEqual([("Read", "tomcat", _TODAY)], store.get_calls)

    async def test_adds_elapsed_minutes_to_existing_record(self) -> None:
        store = _StoreStub([_record(25)])

        record = await self._reconciler(store).reconcile("Read", 10)

        self.assertEqual([], store.add_calls)
        self.assertEqual(
            [
                (
                    RecordKey(task_name="Read", date=_TODAY, username="tomcat"),
                    {"accumulated_minutes": 35},
                )
            ],
            store.update_calls,
        )
        self.assertEqual(35, record.accumulated_minutes)
        self.assertEqual(25, record.target_minutes)

    async def test_successive_sessions_accumulate(self) -> None:
        store = _StoreStub()
        reconciler = self._reconciler(store)

        await reconciler.reconcile("Read", 25)
        record = await reconciler.reconcile("Read", 10)

        self.assertEqual(1, len(store.records))
        self.assertEqual(35, record.accumulated_minutes)

    async def test_uses_target_of_resolved_task(self) -> None:
        store = _StoreStub()

        record = await self._reconciler(store).reconcile("Write", 5)

        self.assertEqual(50, record.target_minutes)

    async def test_duplicate_records_raise_without_writing(self) -> None:
        store = _StoreStub([_record(25, "rec-1"), _record(10, "rec-2")])

        with self.assertRaises(ConsistencyError):
            await self._reconciler(store).reconcile("Read", 5)

        self.assertEqual([], store.add_calls)
        self.assertEqual([], store.update_calls)
        self.assertEqual([25, 10], [record.accumulated_minutes for record in store.records])

    async def test_unknown_task_raises_before_touching_store(self) -> None:
        store = _StoreStub()

        with self.assertRaises(NotFoundError):
            await self._reconciler(store).reconcile("Unknown", 25)

        self.assertEqual([], store.get_calls)
        self.assertEqual([], store.add_calls)
        self.assertEqual([], store.update_calls)


if __name__ == "__main__":
    unittest.main()
