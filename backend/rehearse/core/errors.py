"""
Error taxonomy for the RehearseAI backend.

Every error carries a human-readable message meant to be shown to the user as
is, plus the HTTP status the API reports it with.
"""

from __future__ import annotations


class RehearseError(Exception):
    """Base class for all application errors."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(RehearseError):
    """Backend credentials are missing or placeholders (mock mode)."""

    status_code = 503
    kind = "configuration"


class AuthorizationError(RehearseError):
    """No authenticated identity where one is required."""

    status_code = 401
    kind = "authorization"


class DeviceError(RehearseError):
    """Camera or microphone denied, unavailable or not active."""

    status_code = 409
    kind = "device"


class RemoteError(RehearseError):
    """A request to the identity, storage, database or LLM service failed."""

    status_code = 502
    kind = "remote"


class ParseError(RehearseError):
    """Input could not be validated or parsed."""

    status_code = 422
    kind = "validation"


class FlowStateError(RehearseError):
    """Operation requested in a step of a flow that does not allow it."""

    status_code = 409
    kind = "flow_state"
