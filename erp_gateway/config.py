import base64
import os
import re
from typing import List, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from erp_gateway.errors import ConfigurationError

DEFAULT_BASE_URL = "http://desktop-mpj0ppr:7048/BC240/ODataV4"
DEFAULT_COMPANY = "CRONUS USA, Inc."
DEFAULT_SOAP_URL = "http://desktop-mpj0ppr:7047/BC240/WS/CRONUS%20USA%2C%20Inc./Codeunit/WebCustomerAPI"

# BC_BASE_URL values that already end in the company segment
_COMPANY_SEGMENT = re.compile(r"/Company\([^/]*\)$")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


def encode_credentials(user: str, key: str) -> str:
    return base64.b64encode(f"{user}:{key}".encode("utf-8")).decode("ascii")


class GatewayConfig(BaseModel):
    """Process-wide settings, built once at startup and passed to the gateway."""

    model_config = ConfigDict(frozen=True)

    odata_root: str = DEFAULT_BASE_URL
    company: str = DEFAULT_COMPANY
    soap_url: str = DEFAULT_SOAP_URL
    credentials: SecretStr
    timeout_seconds: float = 30.0
    propagate_upstream_status: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    @property
    def company_url(self) -> str:
        # ODataV4/Company('CRONUS%20USA%2C%20Inc.')
        root = self.odata_root.rstrip("/")
        if _COMPANY_SEGMENT.search(root):
            return root
        return f"{root}/Company('{quote(self.company, safe='')}')"

    @property
    def auth_header(self) -> str:
        return f"Basic {self.credentials.get_secret_value()}"

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        user = os.getenv("BC_USER")
        key = os.getenv("BC_KEY")
        if not user or not key:
            raise ConfigurationError("BC_USER or BC_KEY not set")

        return cls(
            odata_root=os.getenv("BC_BASE_URL", DEFAULT_BASE_URL),
            company=os.getenv("BC_COMPANY_NAME", DEFAULT_COMPANY),
            soap_url=os.getenv("BC_SOAP_URL", DEFAULT_SOAP_URL),
            credentials=SecretStr(encode_credentials(user, key)),
            timeout_seconds=float(os.getenv("BC_TIMEOUT_SECONDS", "30")),
            propagate_upstream_status=_env_bool("BC_PROPAGATE_UPSTREAM_STATUS"),
            cors_origins=cors_origins(),
        )


def server_bind() -> Tuple[str, int]:
    return os.getenv("HOST", "0.0.0.0"), int(os.getenv("PORT", "5000"))


def log_level(default: Optional[str] = None) -> str:
    return os.getenv("LOG_LEVEL", default or "INFO").upper()


def cors_origins() -> List[str]:
    origins = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    return [o.strip() for o in origins.split(",") if o.strip()]
