"""Host shell websocket event and state constants."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_STATE_UPDATE = "state_update"
EVENT_SESSION = "session"
EVENT_TASK_FINISH = "task_finish"
EVENT_ERROR = "error"

# Host-visible runtime states
STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_FINISHED = "finished"
STATE_ERROR = "error"

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_STATE_UPDATE,
        EVENT_SESSION,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_SESSION,
    EVENT_ERROR,
    EVENT_STATE_UPDATE,
)

# Commands a host shell may send back over the websocket
COMMAND_ACKNOWLEDGE = "acknowledge"
COMMAND_ABORT = "abort"

HOST_COMMANDS: frozenset[str] = frozenset({COMMAND_ACKNOWLEDGE, COMMAND_ABORT})
