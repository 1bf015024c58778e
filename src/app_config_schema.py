"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_IDENTITY_FILE = "~/.focus_session/identity.json"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class BackendSettings:
    """Remote task catalog and record store settings from `[backend]`."""
    base_url: str
    timeout_seconds: float = 10.0
    read_retries: int = 2
    retry_initial_delay_seconds: float = 0.5


@dataclass(frozen=True)
class ClockSettings:
    """Countdown tick cadence from `[clock]`."""
    tick_interval_ms: int = 300


@dataclass(frozen=True)
class NotifierSettings:
    """Completion cue playback settings from `[notifier]`."""
    enabled: bool = True
    cue_file: str = ""
    output_device: Optional[int] = None
    volume: float = 0.6


@dataclass(frozen=True)
class IdentitySettings:
    """Location of the local key-value file written by the login flow."""
    store_file: str = DEFAULT_IDENTITY_FILE


@dataclass(frozen=True)
class UIServerSettings:
    """Host shell websocket settings from `[ui_server]`."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    backend: BackendSettings
    clock: ClockSettings
    notifier: NotifierSettings
    identity: IdentitySettings
    ui_server: UIServerSettings
    source_file: str


@dataclass(frozen=True)
class SecretConfig:
    """Environment-provided secrets kept out of `config.toml`."""
    backend_token: Optional[str]
