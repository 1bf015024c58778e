"""Configuration model for the completion cue and its output device."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import NotifierError


@dataclass(frozen=True)
class NotifierConfig:
    """Resolved cue settings; an empty ``cue_file`` selects the built-in chime."""
    enabled: bool = True
    cue_file: str = ""
    output_device_index: Optional[int] = None
    volume: float = 0.6

    def __post_init__(self) -> None:
        if not 0.0 <= self.volume <= 1.0:
            raise NotifierError(f"Notifier volume must be in [0, 1], got: {self.volume}")
        if self.enabled and self.cue_file:
            cue_path = Path(self.cue_file)
            if not cue_path.is_file():
                raise NotifierError(f"Cue file not found: {cue_path}")

    @classmethod
    def from_settings(cls, settings) -> "NotifierConfig":
        return cls(
            enabled=bool(settings.enabled),
            cue_file=(settings.cue_file or "").strip(),
            output_device_index=settings.output_device,
            volume=float(settings.volume),
        )
