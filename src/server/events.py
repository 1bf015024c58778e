"""Serialization and replay helpers for host shell websocket events."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable

from contracts.ui_protocol import HOST_COMMANDS, STICKY_EVENT_ORDER, STICKY_EVENT_TYPES


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and UTC timestamp."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


class StickyEventStore:
    """Latest message per sticky event type, replayed to late-joining shells.

    ``task_finish`` is deliberately not sticky: a shell that connects after
    completion must not be asked to raise its window again.
    """
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def forget(self, event_type: str) -> None:
        with self._lock:
            self._events.pop(event_type, None)

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in STICKY_EVENT_ORDER if key in self._events]


def parse_command(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """Decode a host shell message such as ``{"type": "acknowledge"}``.

    Raises ``ValueError`` for malformed JSON or unknown command types.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    message = json.loads(raw)
    if not isinstance(message, dict):
        raise ValueError("Command must be a JSON object")
    command = message.pop("type", None)
    if command not in HOST_COMMANDS:
        raise ValueError(f"Unsupported command: {command!r}")
    return command, message
