"""State, action, and reason constants used by focus session logic."""

from __future__ import annotations

from enum import IntEnum

DEFAULT_TICK_INTERVAL_SECONDS = 0.3


class FocusDuration(IntEnum):
    """Selectable session lengths in minutes."""

    FIVE = 5
    TEN = 10
    FIFTEEN = 15
    TWENTY = 20
    TWENTY_FIVE = 25


STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_FINISHED = "finished"

ACTION_START = "start"
ACTION_ACKNOWLEDGE = "acknowledge"
ACTION_ABORT = "abort"

ACTION_TICK = "tick"
ACTION_FINISHED = "finished"
ACTION_RECONCILED = "reconciled"

REASON_STARTED = "started"
REASON_ACKNOWLEDGED = "acknowledged"
REASON_ABORTED = "aborted"
REASON_NOT_RUNNING = "not_running"
REASON_NOT_FINISHED = "not_finished"
REASON_TICK = "tick"
REASON_FINISHED = "finished"
REASON_RECONCILED = "reconciled"
REASON_RECONCILE_FAILED = "reconcile_failed"
