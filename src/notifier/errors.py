class NotifierError(Exception):
    """Raised when the completion cue cannot be loaded or played."""


class NotifierDependencyError(NotifierError):
    """Raised when the optional audio backend is not installed or has no device."""
