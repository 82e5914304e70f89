import pytest

from erp_gateway.config import GatewayConfig, encode_credentials
from erp_gateway.endpoints import EndpointTable
from erp_gateway.errors import ConfigurationError

from conftest import COMPANY_URL


def test_from_env_requires_credentials(monkeypatch):
    monkeypatch.setenv("BC_USER", "svc")
    monkeypatch.delenv("BC_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        GatewayConfig.from_env()


def test_from_env(monkeypatch):
    monkeypatch.setenv("BC_USER", "svc")
    monkeypatch.setenv("BC_KEY", "web-key")
    monkeypatch.setenv("BC_BASE_URL", "http://erp:7048/BC/ODataV4/")
    monkeypatch.setenv("BC_COMPANY_NAME", "My Co")
    monkeypatch.setenv("BC_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("BC_PROPAGATE_UPSTREAM_STATUS", "yes")
    monkeypatch.setenv("CORS_ORIGINS", "http://a:5173, http://b:3000")

    cfg = GatewayConfig.from_env()
    assert cfg.company_url == "http://erp:7048/BC/ODataV4/Company('My%20Co')"
    assert cfg.auth_header == "Basic " + encode_credentials("svc", "web-key")
    assert cfg.timeout_seconds == 12.5
    assert cfg.propagate_upstream_status is True
    assert cfg.cors_origins == ["http://a:5173", "http://b:3000"]


def test_credentials_hidden_from_repr(config):
    secret = config.credentials.get_secret_value()
    assert secret not in repr(config)
    assert secret not in str(config)


def test_config_is_immutable(config):
    with pytest.raises(Exception):
        config.timeout_seconds = 1


def test_endpoint_table(config):
    table = EndpointTable(config.company_url)
    assert table["customers"] == COMPANY_URL + "/Customers"
    assert table["salesQuotes"] == table["salesQuote"]
    assert "customers" in table
    assert "vendors" not in table
    with pytest.raises(ConfigurationError):
        table["vendors"]


def test_base_url_already_naming_company(monkeypatch):
    monkeypatch.setenv("BC_USER", "svc")
    monkeypatch.setenv("BC_KEY", "web-key")
    monkeypatch.setenv("BC_BASE_URL", "http://erp:7048/BC/ODataV4/Company('CRONUS%20USA%2C%20Inc.')/")
    monkeypatch.setenv("BC_COMPANY_NAME", "Other Co")

    cfg = GatewayConfig.from_env()
    assert cfg.company_url == "http://erp:7048/BC/ODataV4/Company('CRONUS%20USA%2C%20Inc.')"
    assert EndpointTable(cfg.company_url)["items"].endswith("/ODataV4/Company('CRONUS%20USA%2C%20Inc.')/Items")
