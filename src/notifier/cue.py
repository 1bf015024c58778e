"""Completion cue loading and synthesis."""

from __future__ import annotations

import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .errors import NotifierError

DEFAULT_SAMPLE_RATE_HZ = 44100

_PCM_DTYPES = {
    1: np.uint8,
    2: np.int16,
    4: np.int32,
}


@dataclass(frozen=True)
class AudioCue:
    """Mono float32 samples in [-1, 1] and their sample rate."""
    samples: np.ndarray
    sample_rate_hz: int

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / float(self.sample_rate_hz)


def load_wav_cue(path: str | Path, *, volume: float = 1.0) -> AudioCue:
    """Decode an uncompressed PCM WAV file and downmix it to mono."""
    try:
        with wave.open(str(path), "rb") as wav_file:
            channels = wav_file.getnchannels()
            sample_width = wav_file.getsampwidth()
            sample_rate_hz = wav_file.getframerate()
            frames = wav_file.readframes(wav_file.getnframes())
    except (OSError, EOFError, wave.Error) as error:
        raise NotifierError(f"Failed to read cue file {path}: {error}") from error

    dtype = _PCM_DTYPES.get(sample_width)
    if dtype is None:
        raise NotifierError(f"Unsupported WAV sample width: {sample_width * 8} bit")

    pcm = np.frombuffer(frames, dtype=dtype).astype(np.float32)
    if dtype is np.uint8:
        pcm = (pcm - 128.0) / 128.0
    else:
        pcm /= float(np.iinfo(dtype).max)

    if channels > 1:
        pcm = pcm.reshape(-1, channels).mean(axis=1)
    if len(pcm) == 0:
        raise NotifierError(f"Cue file {path} contains no audio")

    return AudioCue(
        samples=np.clip(pcm * volume, -1.0, 1.0).astype(np.float32),
        sample_rate_hz=int(sample_rate_hz),
    )


def synthesize_chime(
    *,
    sample_rate_hz: int = DEFAULT_SAMPLE_RATE_HZ,
    volume: float = 0.6,
) -> AudioCue:
    """Two decaying bell tones, used when no cue file is configured."""
    notes = ((880.0, 0.0), (1318.5, 0.18))
    length_seconds = 1.4
    t = np.arange(int(sample_rate_hz * length_seconds)) / float(sample_rate_hz)
    wav = np.zeros_like(t)
    for frequency_hz, offset_seconds in notes:
        local = np.clip(t - offset_seconds, 0.0, None)
        envelope = np.where(t >= offset_seconds, np.exp(-4.0 * local), 0.0)
        wav += envelope * np.sin(2.0 * np.pi * frequency_hz * local)

    peak = float(np.max(np.abs(wav))) or 1.0
    return AudioCue(
        samples=(wav / peak * volume).astype(np.float32),
        sample_rate_hz=sample_rate_hz,
    )
