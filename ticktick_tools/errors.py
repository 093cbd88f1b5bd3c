"""Typed failures raised by the TickTick access layer.

Every exception carries enough context (endpoint, protocol, status code,
vendor payload) to reach the caller without a second lookup. The MCP
dispatch boundary in server.py is the only place these become dicts.
"""
from typing import Any


class TickTickError(Exception):
    """Base class for all access-layer failures."""

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        endpoint: str | None = None,
        protocol: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.endpoint = endpoint
        self.protocol = protocol

    def to_dict(self) -> dict:
        result = {
            "success": False,
            "error": self.message,
            "error_type": type(self).__name__,
            "retryable": self.retryable,
        }
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.endpoint:
            result["endpoint"] = self.endpoint
        return result


class ValidationError(TickTickError):
    """Raised when a path parameter or caller input is malformed."""

    def __init__(self, message: str, field_name: str):
        super().__init__(message)
        self.field_name = field_name

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["field"] = self.field_name
        return result


class ConfigError(TickTickError):
    """Raised when config or a named credential is missing or invalid."""


class TwoFactorRequiredError(TickTickError):
    """Sign-on answered with a 2FA challenge. Not supported, never retried."""


class AuthenticationFailedError(TickTickError):
    """Credentials rejected (or sign-on rate limited) by the vendor."""

    def __init__(self, message: str, *, error_code: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.error_code = error_code

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.error_code:
            result["error_code"] = self.error_code
        return result


class AuthExpiredError(TickTickError):
    """Session rejected with 401/403. The session has already been evicted."""

    retryable = True


class IncompatibleProtocolError(TickTickError):
    """Endpoint requested on a surface that does not serve it."""


class NotFoundError(TickTickError):
    """Entity absent from a snapshot fetch, or HTTP 404."""


class ProtocolError(TickTickError):
    """The remote service deviated from its known wire format."""


class ApiError(TickTickError):
    """Any other non-2xx response."""

    def __init__(self, message: str, *, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or (self.status_code or 0) >= 500

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.retry_after is not None:
            result["retry_after_seconds"] = self.retry_after
        return result


class TransportError(TickTickError):
    """Timeouts, refused connections and other transport-level failures."""

    retryable = True
