"""aiohttp client for the remote task catalog and record store endpoints."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import random
from typing import Any, Awaitable, Callable, Mapping, Optional

import aiohttp

from .config import BackendConfig
from .contracts import Record, RecordKey, Task, format_date, parse_date
from .errors import RecordStoreError

TASK_LIST_PATH = "/task/list"
RECORD_GET_PATH = "/record/get"
RECORD_ADD_PATH = "/record/add"
RECORD_UPDATE_PATH = "/record/update"

_PATCH_FIELDS = {
    "accumulated_minutes": "value",
    "target_minutes": "target",
}


class HttpBackend:
    """Task catalog and record store backed by a JSON-over-HTTP service.

    Only the read operations (``list`` and ``get``) are retried. Writes are sent
    exactly once because adding minutes is not idempotent.
    """

    def __init__(
        self,
        config: BackendConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        logger: Optional[logging.Logger] = None,
        sleep_fn: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self._config = config
        self._session = session
        self._owns_session = session is None
        self._logger = logger or logging.getLogger("records.http")
        self._sleep = sleep_fn or asyncio.sleep

    async def __aenter__(self) -> "HttpBackend":
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def list(self, username: str) -> list[Task]:
        data = await self._read(TASK_LIST_PATH, {"username": username})
        return [_task_from_wire(item) for item in _as_list(data, TASK_LIST_PATH)]

    async def get(self, task_name: str, username: str, date) -> list[Record]:
        data = await self._read(
            RECORD_GET_PATH,
            {"name": task_name, "username": username, "date": format_date(date)},
        )
        return [_record_from_wire(item) for item in _as_list(data, RECORD_GET_PATH)]

    async def add(self, record: Record) -> Record:
        data = await self._request("POST", RECORD_ADD_PATH, json=_record_to_wire(record))
        if isinstance(data, Mapping) and "value" in data:
            return _record_from_wire(data)

        record_id = None
        if isinstance(data, Mapping):
            record_id = data.get("_id") or data.get("id")
        elif isinstance(data, str):
            record_id = data
        return dataclasses.replace(record, id=record_id or record.id)

    async def update(self, key: RecordKey, patch: Mapping[str, Any]) -> Record:
        payload: dict[str, Any] = {}
        for field, value in patch.items():
            wire_field = _PATCH_FIELDS.get(field)
            if wire_field is None:
                raise ValueError(f"Unsupported record patch field: {field}")
            payload[wire_field] = value

        data = await self._request(
            "POST",
            RECORD_UPDATE_PATH,
            json={
                "query": {
                    "name": key.task_name,
                    "date": format_date(key.date),
                    "username": key.username,
                },
                "payload": payload,
            },
        )
        if isinstance(data, Mapping) and "value" in data:
            return _record_from_wire(data)

        # The service only acknowledged the write; read the record back.
        records = await self.get(key.task_name, key.username, key.date)
        if not records:
            raise RecordStoreError(
                f"Record {key.task_name!r} on {format_date(key.date)} missing after update"
            )
        return records[0]

    async def _read(self, path: str, params: Mapping[str, str]) -> Any:
        attempts = self._config.read_retries + 1
        for attempt in range(attempts):
            try:
                return await self._request("GET", path, params=params)
            except RecordStoreError as error:
                if not error.retryable or attempt >= attempts - 1:
                    raise
                delay = self._retry_delay(attempt)
                self._logger.warning(
                    "Read %s failed (attempt %d/%d), retrying in %.2fs: %s",
                    path,
                    attempt + 1,
                    attempts,
                    delay,
                    error,
                )
                await self._sleep(delay)
        raise RecordStoreError(f"GET {path} failed")  # pragma: no cover

    def _retry_delay(self, attempt: int) -> float:
        delay = self._config.retry_initial_delay_seconds * (2 ** attempt)
        delay = min(delay, self._config.retry_max_delay_seconds)
        return delay * (0.5 + random.random())

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
    ) -> Any:
        session = self._ensure_session()
        url = f"{self._config.root_url}{path}"
        headers = {"Accept": "application/json"}
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"

        try:
            async with session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise RecordStoreError(
                        f"{method} {path} failed with HTTP {response.status}: {body[:200]}",
                        status=response.status,
                    )
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as error:
            raise RecordStoreError(f"{method} {path} failed: {error}") from error
        except ValueError as error:
            raise RecordStoreError(f"{method} {path} returned invalid JSON") from error

        self._logger.debug("%s %s -> %s", method, path, payload)
        if not isinstance(payload, Mapping):
            raise RecordStoreError(f"{method} {path} returned an unexpected payload")
        return payload.get("data")

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds)
            )
            self._owns_session = True
        return self._session


def _as_list(data: Any, path: str) -> list[Any]:
    # A missing list must not read as "no records", or reconcile would add a duplicate.
    if data is None:
        raise RecordStoreError(f"{path} returned no data")
    if not isinstance(data, list):
        raise RecordStoreError(f"{path} returned {type(data).__name__}, expected a list")
    return data


def _task_from_wire(item: Any) -> Task:
    try:
        return Task(name=str(item["name"]), target_minutes=int(item["target"]))
    except (KeyError, TypeError, ValueError) as error:
        raise RecordStoreError(f"Malformed task payload: {item!r}") from error


def _record_from_wire(item: Any) -> Record:
    try:
        record_id = item.get("_id") or item.get("id")
        return Record(
            id=str(record_id) if record_id is not None else None,
            task_name=str(item["name"]),
            date=parse_date(str(item["date"])),
            username=str(item["username"]),
            accumulated_minutes=int(item["value"]),
            target_minutes=int(item["target"]),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as error:
        raise RecordStoreError(f"Malformed record payload: {item!r}") from error


def _record_to_wire(record: Record) -> dict[str, Any]:
    return {
        "name": record.task_name,
        "time": record.accumulated_minutes,
        "username": record.username,
        "date": format_date(record.date),
        "value": record.accumulated_minutes,
        "target": record.target_minutes,
    }
