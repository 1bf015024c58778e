"""Validated configuration for the remote task catalog and record store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from .errors import BackendConfigurationError


@dataclass(frozen=True)
class BackendConfig:
    base_url: str
    timeout_seconds: float = 10.0
    read_retries: int = 2
    retry_initial_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 5.0
    api_token: Optional[str] = None

    def __post_init__(self) -> None:
        parts = urlsplit(self.base_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise BackendConfigurationError(
                f"backend.base_url must be an http(s) URL, got: {self.base_url!r}"
            )
        if self.timeout_seconds <= 0:
            raise BackendConfigurationError("backend.timeout_seconds must be > 0")
        if self.read_retries < 0:
            raise BackendConfigurationError("backend.read_retries must be >= 0")
        if self.retry_initial_delay_seconds < 0:
            raise BackendConfigurationError(
                "backend.retry_initial_delay_seconds must be >= 0"
            )

    @property
    def root_url(self) -> str:
        return self.base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings, *, api_token: str | None = None) -> "BackendConfig":
        return cls(
            base_url=settings.base_url.strip(),
            timeout_seconds=float(settings.timeout_seconds),
            read_retries=int(settings.read_retries),
            retry_initial_delay_seconds=float(settings.retry_initial_delay_seconds),
            api_token=(api_token or "").strip() or None,
        )
