import json
import threading
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from erp_gateway.config import GatewayConfig, encode_credentials
from erp_gateway.dispatcher import Gateway
from erp_gateway.main import create_app

ODATA_ROOT = "http://bc.test:7048/BC240/ODataV4"
COMPANY_URL = ODATA_ROOT + "/Company('CRONUS%20USA%2C%20Inc.')"
SOAP_URL = "http://bc.test:7047/BC240/WS/CRONUS/Codeunit/WebCustomerAPI"


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None, text: Optional[str] = None, reason: str = "OK", headers=None):
        self.status_code = status_code
        self.reason = reason
        self.headers = headers or {"Content-Type": "application/json"}
        if text is not None:
            self.text = text
        elif body is None:
            self.text = ""
        else:
            self.text = json.dumps(body)


class FakeSession:
    """Stands in for requests.Session; `responder(method, url)` returns a FakeResponse or raises."""

    def __init__(self, responder: Optional[Callable] = None):
        self.responder = responder or (lambda method, url: FakeResponse(body={"value": []}))
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def request(self, method, url, data=None, headers=None, timeout=None):
        with self._lock:
            self.calls.append({"method": method, "url": url, "data": data, "headers": headers, "timeout": timeout})
        return self.responder(method, url)

    def close(self):
        pass

    @property
    def urls(self) -> List[str]:
        return [c["url"] for c in self.calls]


@pytest.fixture
def config():
    return GatewayConfig(
        odata_root=ODATA_ROOT,
        company="CRONUS USA, Inc.",
        soap_url=SOAP_URL,
        credentials=SecretStr(encode_credentials("admin", "s3cret-key")),
        timeout_seconds=5,
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def gateway(config, session):
    return Gateway(config, session=session)


@pytest.fixture
def client(config, session):
    return TestClient(create_app(config, session=session))
