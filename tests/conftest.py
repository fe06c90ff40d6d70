"""Pytest fixtures for gateway client tests."""

import pytest

from onopay.integrations.clients.mocks.payments import MockOnopayGateway
from onopay.integrations.clients.real_http.payments import OnopayClient
from onopay.integrations.policy.request_builder import RequestBuilder
from onopay.utils.config_loader import GatewayConfig


class SleepRecorder:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        merchant_id="MERCH001",
        api_key="test-api-key",
        salt_key_request="request-salt",
        salt_key_response="response-salt",
        gst_number="27AAAPL1234C1ZV",
        pan_number="AAAPL1234C",
    )


@pytest.fixture
def builder(gateway_config):
    return RequestBuilder(gateway_config)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def mock_gateway(gateway_config):
    return MockOnopayGateway(gateway_config)


@pytest.fixture
def client(gateway_config, mock_gateway, sleeps):
    return OnopayClient(gateway_config, transport=mock_gateway.transport(), sleep=sleeps)
