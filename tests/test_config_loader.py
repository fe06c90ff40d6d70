from decimal import Decimal

import pytest
from pydantic import ValidationError

from onopay.integrations.contracts.interfaces import GatewayAction
from onopay.utils.config_loader import DEFAULT_CONFIG_PATH, GatewayEndpoints, load_gateway_config

CONFIG_YAML = """
onopay:
  merchant_id: MERCH-YAML
  api_key: yaml-key
  salt_key_request: yaml-request-salt
  salt_key_response: yaml-response-salt
  gst_number: 27AAAPL1234C1ZV
  pan_number: AAAPL1234C
  endpoints:
    base_url: https://sandbox.onopay.in/
  max_retries: 2
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ONOPAY_SALT_KEY_REQUEST", "ONOPAY_MAX_RETRIES", "ONOPAY_BASE_URL", "ONOPAY_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)


def test_load_from_yaml(tmp_path):
    path = tmp_path / "gateway.yml"
    path.write_text(CONFIG_YAML, encoding="utf-8")

    config = load_gateway_config(path)

    assert config.merchant_id == "MERCH-YAML"
    assert config.max_retries == 2
    assert config.retry_delay == 2.0
    assert config.timeout == 30.0
    assert config.high_value_threshold == Decimal("200000")
    assert config.endpoints.url_for(GatewayAction.UPI_COLLECT) == "https://sandbox.onopay.in/upi/collect"


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "gateway.yml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    monkeypatch.setenv("ONOPAY_SALT_KEY_REQUEST", "env-request-salt")
    monkeypatch.setenv("ONOPAY_MAX_RETRIES", "5")
    monkeypatch.setenv("ONOPAY_BASE_URL", "https://api.onopay.in")

    config = load_gateway_config(path)

    assert config.salt_key_request == "env-request-salt"
    assert config.salt_key_response == "yaml-response-salt"
    assert config.max_retries == 5
    assert config.endpoints.base_url == "https://api.onopay.in"


def test_secrets_are_not_in_repr(tmp_path):
    path = tmp_path / "gateway.yml"
    path.write_text(CONFIG_YAML, encoding="utf-8")

    text = repr(load_gateway_config(path))

    assert "yaml-request-salt" not in text
    assert "yaml-key" not in text


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_gateway_config(tmp_path / "absent.yml")


def test_invalid_values_fail_validation(tmp_path):
    path = tmp_path / "gateway.yml"
    path.write_text(CONFIG_YAML.replace("max_retries: 2", "max_retries: 50"), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_gateway_config(path)


def test_bundled_config_loads():
    config = load_gateway_config(DEFAULT_CONFIG_PATH)
    assert config.currency == "INR"
    assert config.max_retries == 3
    assert config.endpoints.url_for(GatewayAction.MANDATE_CREATE) == "https://api.onopay.in/mandate/create"


def test_absolute_endpoint_urls_are_kept():
    endpoints = GatewayEndpoints(refund="https://refunds.onopay.in/v2/refund")
    assert endpoints.url_for(GatewayAction.REFUND) == "https://refunds.onopay.in/v2/refund"
