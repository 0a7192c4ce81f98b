"""
Exception hierarchy for the FS Image Server.

Resolution errors carry everything needed to build a ``Failure``: the HTTP
status, the user-facing message key and an internal reason tag. They are
raised inside the resolver and converted at its boundary, so none of them
reach the response layer.
"""

from typing import Any


class FSISException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FSISException):
    """Invalid or unreadable group/application configuration."""


class ResolutionError(FSISException):
    """A terminal failure while resolving a group/filename pair."""

    status_code: int = 500
    message_key: str = "unknown-file"
    reason: str = "internal_error"
    # Whether the group's fallback file may be served instead of the error
    uses_fallback: bool = True

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        if reason is not None:
            self.reason = reason


class UnknownGroupError(ResolutionError):
    status_code = 400
    message_key = "unknown-group"
    reason = "unknown_group"
    uses_fallback = False


class UnauthorizedError(ResolutionError):
    status_code = 403
    message_key = "unauthorized"
    reason = "permission_denied"
    uses_fallback = False


class UnknownOrTraversalFileError(ResolutionError):
    """Missing file, traversal attempt or broken base. Indistinguishable to users."""

    status_code = 404
    reason = "not_found"


class UnreadableFileError(ResolutionError):
    status_code = 500
    reason = "unreadable"


class DisallowedMimeTypeError(ResolutionError):
    status_code = 500
    reason = "mime_not_allowed"
