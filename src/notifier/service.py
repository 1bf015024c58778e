"""Completion notifier: audio cue plus a focus request to the host shell."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from contracts.ui_protocol import EVENT_TASK_FINISH

from .cue import AudioCue
from .errors import NotifierError


class AudioOutputLike(Protocol):
    def play(self, wav: Any, sample_rate_hz: int) -> None:
        ...

    def stop(self) -> None:
        ...


class HostShellLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...


class CompletionNotifier:
    """Fire-and-forget completion signal. Failures are logged, never raised."""
    def __init__(
        self,
        *,
        cue: Optional[AudioCue] = None,
        output: Optional[AudioOutputLike] = None,
        host: Optional[HostShellLike] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._cue = cue
        self._output = output
        self._host = host
        self._logger = logger or logging.getLogger("notifier")
        self._playing = False

    @property
    def is_playing(self) -> bool:
        return self._playing

    def notify(self) -> None:
        if self._cue is not None and self._output is not None:
            try:
                self._output.play(self._cue.samples, self._cue.sample_rate_hz)
                self._playing = True
            except NotifierError as error:
                self._logger.error("Completion cue playback failed: %s", error)

        if self._host is not None:
            self._host.publish(EVENT_TASK_FINISH, data="ok")

    def stop(self) -> None:
        if not self._playing or self._output is None:
            return
        self._playing = False
        try:
            self._output.stop()
        except NotifierError as error:
            self._logger.warning("Failed to stop completion cue: %s", error)
