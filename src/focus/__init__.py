from .clock import ClockHandle, CountdownClock
from .constants import FocusDuration
from .errors import BusyError, FocusError, ValidationError
from .session import (
    FocusSession,
    SessionAction,
    SessionActionResult,
    SessionContext,
    SessionSnapshot,
    SessionState,
)

__all__ = [
    "BusyError",
    "ClockHandle",
    "CountdownClock",
    "FocusDuration",
    "FocusError",
    "FocusSession",
    "SessionAction",
    "SessionActionResult",
    "SessionContext",
    "SessionSnapshot",
    "SessionState",
    "ValidationError",
]
