"""End-to-end client tests against the in-memory mock gateway."""

import asyncio
import json

import httpx
import pytest

from onopay.integrations.clients.mocks.payments import MockOnopayGateway
from onopay.integrations.clients.real_http.payments import OnopayClient
from onopay.integrations.contracts.interfaces import (
    MandateRequest,
    PaymentInitiation,
    PaymentOutcome,
    PaymentState,
    RefundRequest,
    UPICollectRequest,
)
from onopay.integrations.exceptions import (
    ConfigurationError,
    GatewayRejectedError,
    NetworkFailureError,
    RequestValidationError,
    ResponseFormatError,
    SecurityViolationError,
)
from onopay.integrations.policy.checksum import sign_fields


class SpyTransport(httpx.MockTransport):
    """Counts every request and answers with a canned body."""

    def __init__(self, status_code=200, body="{}"):
        self.requests = []
        super().__init__(self._handle)
        self._status_code = status_code
        self._body = body

    def _handle(self, request):
        self.requests.append(request)
        return httpx.Response(self._status_code, text=self._body)


def _collect(order_id="UPI-1", amount=499, phone="9876543210"):
    return UPICollectRequest(order_id, amount, phone, "https://arena.example.in/payments/callback")


def _mandate(**overrides):
    data = dict(
        order_id="MDT-1",
        amount=299,
        customer_name="Asha Rao",
        customer_email="asha@example.in",
        customer_phone="9876543210",
        bank_account="50100012345678",
        ifsc_code="HDFC0001234",
        start_date="2026-11-01",
        end_date="2027-10-31",
    )
    data.update(overrides)
    return MandateRequest(**data)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "update,message",
    [
        ({"gst_number": None}, "GST"),
        ({"pan_number": ""}, "PAN"),
        ({"currency": "USD"}, "INR"),
    ],
)
def test_configuration_is_validated_at_construction(gateway_config, update, message):
    with pytest.raises(ConfigurationError, match=message):
        OnopayClient(gateway_config.model_copy(update=update))


def test_gst_number_optional_when_gst_disabled(gateway_config):
    OnopayClient(gateway_config.model_copy(update={"gst_enabled": False, "gst_number": None}))


# ---------------------------------------------------------------------------
# UPI collect
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upi_collect_round_trip(client, mock_gateway):
    result = await client.initiate_upi_payment(_collect())

    assert result.status == PaymentOutcome.UPI_PENDING
    assert result.state == PaymentState.VERIFIED_PENDING
    assert result.order_id == "UPI-1"
    assert result.upi_reference
    assert result.raw["checksum"]
    assert len(mock_gateway.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -50])
async def test_invalid_amount_never_reaches_the_network(gateway_config, amount):
    spy = SpyTransport()
    client = OnopayClient(gateway_config, transport=spy)

    with pytest.raises(RequestValidationError) as exc_info:
        await client.initiate_upi_payment(_collect(amount=amount))

    assert exc_info.value.field == "amount"
    assert exc_info.value.state == PaymentState.REJECTED_INVALID
    assert spy.requests == []


@pytest.mark.asyncio
async def test_upi_collect_declined_by_gateway(gateway_config, sleeps):
    gateway = MockOnopayGateway(gateway_config, upi_accepts=False)
    client = OnopayClient(gateway_config, transport=gateway.transport(), sleep=sleeps)

    with pytest.raises(GatewayRejectedError) as exc_info:
        await client.initiate_upi_payment(_collect())

    assert exc_info.value.action == "upi_collect"
    assert exc_info.value.state == PaymentState.VERIFIED_FAILED
    assert "declined" in exc_info.value.message


@pytest.mark.asyncio
async def test_transient_outage_is_retried(gateway_config, sleeps):
    gateway = MockOnopayGateway(gateway_config, transient_failures=2)
    client = OnopayClient(gateway_config, transport=gateway.transport(), sleep=sleeps)

    result = await client.initiate_upi_payment(_collect())

    assert result.status == PaymentOutcome.UPI_PENDING
    assert len(gateway.calls) == 3
    assert sleeps.calls == [2.0, 2.0]


@pytest.mark.asyncio
async def test_persistent_outage_raises_network_failure(gateway_config, sleeps):
    gateway = MockOnopayGateway(gateway_config, transient_failures=100)
    client = OnopayClient(gateway_config, transport=gateway.transport(), sleep=sleeps)

    with pytest.raises(NetworkFailureError) as exc_info:
        await client.initiate_upi_payment(_collect())

    assert exc_info.value.attempts == gateway_config.max_retries + 1
    assert exc_info.value.state == PaymentState.NETWORK_FAILED


@pytest.mark.asyncio
async def test_concurrent_actions_are_independent(client, mock_gateway):
    results = await asyncio.gather(
        client.initiate_upi_payment(_collect(order_id="UPI-A")),
        client.initiate_upi_payment(_collect(order_id="UPI-B", amount=50)),
    )

    assert {r.order_id for r in results} == {"UPI-A", "UPI-B"}
    assert len(mock_gateway.calls) == 2


# ---------------------------------------------------------------------------
# Reply verification
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tampered_reply_is_rejected(gateway_config):
    reply = sign_fields(
        {"status": "success", "status_code": "UPI_PENDING", "order_id": "UPI-1", "amount": "499.00"},
        gateway_config.salt_key_response,
    )
    reply["amount"] = "1.00"
    client = OnopayClient(gateway_config, transport=SpyTransport(body=json.dumps(reply)))

    with pytest.raises(SecurityViolationError) as exc_info:
        await client.initiate_upi_payment(_collect())
    assert exc_info.value.state == PaymentState.REJECTED_TAMPERED


@pytest.mark.asyncio
async def test_reply_signed_with_request_salt_is_rejected(gateway_config):
    reply = sign_fields({"status": "success", "status_code": "00", "order_id": "IN-1"}, gateway_config.salt_key_request)
    client = OnopayClient(gateway_config, transport=SpyTransport(body=json.dumps(reply)))

    with pytest.raises(SecurityViolationError):
        await client.check_status("IN-1")


@pytest.mark.asyncio
async def test_reply_without_checksum_is_a_security_violation(gateway_config):
    client = OnopayClient(gateway_config, transport=SpyTransport(body='{"status": "success", "status_code": "00"}'))

    with pytest.raises(SecurityViolationError):
        await client.check_status("IN-1")


@pytest.mark.asyncio
async def test_non_json_reply_is_a_format_error(gateway_config):
    client = OnopayClient(gateway_config, transport=SpyTransport(body="<html>maintenance</html>"))

    with pytest.raises(ResponseFormatError):
        await client.check_status("IN-1")


# ---------------------------------------------------------------------------
# Mandates, status, refunds
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_mandate_creation(client):
    result = await client.create_mandate(_mandate(mandate_type="upi_autopay"))

    assert result.status == PaymentOutcome.PENDING
    assert result.raw["mandate_type"] == "upi_autopay"


@pytest.mark.asyncio
async def test_mandate_with_bad_ifsc_is_not_sent(client, mock_gateway):
    with pytest.raises(RequestValidationError) as exc_info:
        await client.create_mandate(_mandate(ifsc_code="HDFC1234"))

    assert exc_info.value.field == "ifsc_code"
    assert mock_gateway.calls == []


@pytest.mark.asyncio
async def test_mandate_rejected_by_bank(gateway_config, sleeps):
    gateway = MockOnopayGateway(gateway_config, mandate_accepts=False)
    client = OnopayClient(gateway_config, transport=gateway.transport(), sleep=sleeps)

    with pytest.raises(GatewayRejectedError) as exc_info:
        await client.create_mandate(_mandate())
    assert exc_info.value.action == "mandate_create"


@pytest.mark.asyncio
async def test_status_then_refund(client):
    await client.initiate_upi_payment(_collect(order_id="UPI-9", amount=1180))

    status = await client.check_status("UPI-9")
    assert status.status == PaymentOutcome.SUCCESS
    assert str(status.gst_amount) == "180.00"
    assert status.invoice_number == "INV-UPI-9"

    refund = await client.initiate_refund(RefundRequest("UPI-9", status.transaction_id, 100, reason="match cancelled"))
    assert refund.status == PaymentOutcome.PENDING

    too_much = await client.initiate_refund(RefundRequest("UPI-9", status.transaction_id, 5000))
    assert too_much.status == PaymentOutcome.FAILED
    assert too_much.state == PaymentState.VERIFIED_FAILED


@pytest.mark.asyncio
async def test_status_of_unknown_order_is_unknown(client):
    result = await client.check_status("NOPE-1")
    assert result.status == PaymentOutcome.UNKNOWN
    assert result.state == PaymentState.VERIFIED_UNKNOWN


# ---------------------------------------------------------------------------
# Redirect flow and callbacks
# ---------------------------------------------------------------------------

def test_payment_form_is_built_without_network(client, mock_gateway):
    signed = client.build_payment_form(
        PaymentInitiation(
            order_id="IN-77",
            amount="750",
            customer_name="Asha Rao",
            customer_email="asha@example.in",
            customer_phone="9876543210",
            redirect_url="https://arena.example.in/payments/callback",
            payment_method="card",
        )
    )

    assert signed.fields["order_id"] == "IN-77"
    assert signed.fields["amount"] == "750.00"
    assert mock_gateway.calls == []


def test_callback_is_verified_and_interpreted(client, mock_gateway):
    callback = mock_gateway.build_callback("IN-77", 750, status_code="00", payment_method="card")

    result = client.handle_payment_response(callback)

    assert result.status == PaymentOutcome.SUCCESS
    assert result.bank_reference
    assert result.raw == callback


def test_tampered_callback_is_rejected(client, mock_gateway):
    callback = mock_gateway.build_callback("IN-78", 750, status_code="01")
    callback["amount"] = "7.50"

    with pytest.raises(SecurityViolationError):
        client.handle_payment_response(callback)


def test_empty_callback_is_a_format_error(client):
    with pytest.raises(ResponseFormatError):
        client.handle_payment_response({})


def test_callback_missing_checksum_is_a_security_violation(client, mock_gateway):
    callback = mock_gateway.build_callback("IN-79", 100, status_code="02")
    callback.pop("checksum")

    with pytest.raises(SecurityViolationError):
        client.handle_payment_response(callback)


@pytest.mark.asyncio
async def test_gateway_refuses_request_signed_with_wrong_salt(gateway_config, mock_gateway):
    wrong = gateway_config.model_copy(update={"salt_key_request": "not-the-merchant-salt"})
    client = OnopayClient(wrong, transport=mock_gateway.transport())

    result = await client.check_status("IN-1")

    assert result.status == PaymentOutcome.FAILED
    assert result.message == "Request checksum mismatch"
