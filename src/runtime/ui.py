from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from contracts.ui_protocol import EVENT_ERROR, EVENT_SESSION, STATE_ERROR
from focus import SessionSnapshot


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        ...


SessionListener = Callable[[SessionSnapshot, str, Optional[str]], None]


class RuntimeUIPublisher:
    """Fans session updates out to the host shell and local listeners."""
    def __init__(
        self,
        ui_server: Optional[UIServerLike],
        *,
        listener: Optional[SessionListener] = None,
    ):
        self._ui_server = ui_server
        self._listener = listener

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        if self._ui_server:
            self._ui_server.publish_state(state, message=message, **payload)

    def publish_session_update(
        self,
        snapshot: SessionSnapshot,
        *,
        action: str,
        accepted: Optional[bool] = None,
        reason: str = "",
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "action": action,
            "state": snapshot.state,
            "task": snapshot.task_name,
            "planned_minutes": snapshot.planned_minutes,
            "remaining_seconds": snapshot.remaining_seconds,
        }
        if accepted is not None:
            payload["accepted"] = accepted
        if reason:
            payload["reason"] = reason
        if message:
            payload["message"] = message
        self.publish(EVENT_SESSION, **payload)
        if self._listener:
            self._listener(snapshot, action, message)

    def publish_error(self, message: str, **payload: Any) -> None:
        self.publish(EVENT_ERROR, message=message, **payload)
        self.publish_state(STATE_ERROR, message=message)
