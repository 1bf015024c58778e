"""Sounddevice-backed, non-blocking playback of the completion cue."""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from .errors import NotifierDependencyError, NotifierError


class SoundDeviceAudioOutput:
    """Plays mono PCM arrays through a selected sounddevice output."""
    def __init__(
        self,
        output_device_index: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._output_device_index = output_device_index
        self._logger = logger or logging.getLogger(__name__)
        self._sd: Any = None

    def play(self, wav: np.ndarray, sample_rate_hz: int) -> None:
        if wav.ndim != 1:
            raise NotifierError("Expected mono PCM array for playback")
        if len(wav) == 0:
            raise NotifierError("Cannot play empty audio buffer")

        sd = self._sounddevice()
        try:
            sd.play(wav, samplerate=sample_rate_hz, device=self._output_device_index)
        except Exception as error:
            raise NotifierError(f"Audio playback failed: {error}") from error
        self._logger.debug(
            "Playing %d samples of cue audio at %d Hz",
            len(wav),
            sample_rate_hz,
        )

    def stop(self) -> None:
        if self._sd is None:
            return
        try:
            self._sd.stop()
        except Exception as error:
            raise NotifierError(f"Failed to stop audio playback: {error}") from error

    def _sounddevice(self):
        if self._sd is None:
            try:
                import sounddevice
            except (ImportError, OSError) as error:  # pragma: no cover - host dependent
                # sounddevice raises OSError when the PortAudio library is missing.
                raise NotifierDependencyError(
                    f"Audio output unavailable: {error}. Install sounddevice and PortAudio."
                ) from error
            self._sd = sounddevice
        return self._sd
