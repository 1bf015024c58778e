"""Websocket channel that streams session events to a host shell."""

from .config import ServerConfigurationError, UIServerConfig
from .service import UIServer

__all__ = [
    "ServerConfigurationError",
    "UIServerConfig",
    "UIServer",
]
