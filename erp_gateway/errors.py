from contextlib import contextmanager
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base error rendered as {error, details?, message?} by the app."""

    status_code = 500

    def __init__(
        self,
        error: str,
        details: Optional[str] = None,
        message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(details or error)
        self.error = error
        self.details = details
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        if self.message is not None:
            body["message"] = self.message
        body.update(self.extra)
        return body


class CallerError(GatewayError):
    status_code = 400


class NotFoundError(GatewayError):
    status_code = 404

    def __init__(self, message: str, suggestion: Optional[str] = None):
        extra = {"suggestion": suggestion} if suggestion else None
        super().__init__("Not Found", message=message, extra=extra)


class ConfigurationError(GatewayError):
    status_code = 500

    def __init__(self, details: str):
        super().__init__("Gateway misconfigured", details=details)


class BackendError(GatewayError):
    status_code = 500

    def __init__(self, details: str, upstream_status: Optional[int] = None, response: Optional[str] = None):
        extra = {"response": response} if response is not None else None
        super().__init__("Upstream request failed", details=details, extra=extra)
        self.upstream_status = upstream_status


class BackendUnavailable(BackendError):
    """Timeout or connection failure talking to the ERP."""


class RequestCancelled(BackendUnavailable):
    """The inbound client went away before this outbound call was sent."""


@contextmanager
def failure_label(label: str):
    """Relabel backend/config errors raised inside the block, e.g. 'Failed to fetch customers'."""
    try:
        yield
    except (BackendError, ConfigurationError) as e:
        e.error = label
        raise
