"""Runtime exports."""

from .loop import RuntimeBootstrap, SessionRunner

__all__ = ["RuntimeBootstrap", "SessionRunner"]
