class FocusError(Exception):
    """Base exception for focus session operations."""


class ValidationError(FocusError):
    """Raised when a session is started with a missing or invalid task or duration."""


class BusyError(FocusError):
    """Raised when a session is started while another one is still in flight."""
