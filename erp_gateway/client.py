import json
import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Optional

import requests

from erp_gateway.config import GatewayConfig
from erp_gateway.errors import BackendError, BackendUnavailable, RequestCancelled

logger = logging.getLogger(__name__)

# set by DisconnectWatch once the inbound client has gone away
_cancelled: ContextVar[Optional[threading.Event]] = ContextVar("erp_request_cancelled", default=None)


def current_cancellation() -> Optional[threading.Event]:
    return _cancelled.get()


@contextmanager
def cancellation(event: threading.Event):
    """Outbound calls made inside the block are skipped once `event` is set."""
    token = _cancelled.set(event)
    try:
        yield event
    finally:
        _cancelled.reset(token)


def is_success(r: requests.Response) -> bool:
    return 200 <= r.status_code < 300


class ERPClient:
    """Single-shot calls to the ERP OData service with Basic auth."""

    def __init__(self, config: GatewayConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        for k, v in (extra or {}).items():
            if v and k.lower() != "authorization":
                headers[k] = str(v)
        headers["Authorization"] = self.config.auth_header
        return headers

    def send(
        self,
        url: str,
        method: str = "GET",
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """One outbound request; transport failures become BackendUnavailable."""
        event = _cancelled.get()
        if event is not None and event.is_set():
            logger.warning("Client disconnected, skipping ERP %s %s", method.upper(), url)
            raise RequestCancelled("client disconnected")
        logger.info("ERP %s %s", method.upper(), url)
        try:
            return self.session.request(
                method.upper(),
                url,
                data=data,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error("ERP request timed out url=%s err=%s", url, e)
            raise BackendUnavailable(f"Timed out after {self.config.timeout_seconds}s") from e
        except requests.exceptions.ConnectionError as e:
            logger.error("ERP connection failed url=%s err=%s", url, e)
            raise BackendUnavailable(f"Connection failed: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error("ERP request failed url=%s err=%s", url, e)
            raise BackendError(str(e)) from e

    def request(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        r = self.send(url, method=method, data=data, headers=self._headers(headers))
        text = r.text or ""

        if not is_success(r):
            logger.error(
                "Error from ERP [%s] url=%s reason=%s headers=%s body=%s",
                r.status_code, url, r.reason, dict(r.headers), text,
            )
            raise BackendError(f"HTTP {r.status_code} - {r.reason}", upstream_status=r.status_code)

        if not text.strip():
            return {}

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error("Invalid JSON from ERP url=%s body=%s", url, text[:500])
            raise BackendError("invalid JSON from upstream", upstream_status=r.status_code) from e

    def get(self, url: str, **kwargs) -> Any:
        return self.request(url, "GET", **kwargs)

    def post(self, url: str, body: Any, **kwargs) -> Any:
        return self.request(url, "POST", body=body, **kwargs)
