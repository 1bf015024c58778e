"""Configuration model for the host shell websocket server."""

from __future__ import annotations

from dataclasses import dataclass


class ServerConfigurationError(Exception):
    """Raised when host shell server configuration is invalid."""


WEBSOCKET_PATH = "/ws"
HEALTHZ_PATH = "/healthz"


@dataclass(frozen=True)
class UIServerConfig:
    """Validated websocket server configuration derived from app settings."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765

    def __post_init__(self) -> None:
        if not self.host.strip():
            raise ServerConfigurationError("ui_server.host cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ServerConfigurationError(
                f"ui_server.port must be in [1, 65535], got: {self.port}"
            )

    @property
    def websocket_path(self) -> str:
        return WEBSOCKET_PATH

    @classmethod
    def from_settings(cls, settings) -> "UIServerConfig":
        return cls(
            enabled=bool(settings.enabled),
            host=settings.host,
            port=settings.port,
        )
