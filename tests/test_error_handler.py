import httpx

from onopay.error_handler import ErrorHandler
from onopay.integrations.exceptions import (
    ConfigurationError,
    GatewayRejectedError,
    NetworkFailureError,
    RequestValidationError,
    SecurityViolationError,
)


def test_handle_exception_returns_payload_for_unexpected_errors():
    eh = ErrorHandler()
    status, out = eh.handle_exception(Exception("boom"), context={"k": "v"})
    assert status == 500
    assert "internal error" in out["message"].lower()
    assert "boom" in out["metadata"]["error"]
    assert out["metadata"]["context"] == {"k": "v"}


def test_gateway_errors_map_to_http_status():
    eh = ErrorHandler()
    assert eh.status_for(RequestValidationError("amount", "Amount must be greater than zero")) == 422
    assert eh.status_for(SecurityViolationError("Checksum missing in response")) == 400
    assert eh.status_for(GatewayRejectedError("upi_collect", "declined")) == 402
    assert eh.status_for(NetworkFailureError("down", last_error=httpx.ConnectError("refused"), attempts=4)) == 502
    assert eh.status_for(ConfigurationError("PAN number is required")) == 500


def test_validation_detail_names_field():
    status, out = ErrorHandler().handle_exception(RequestValidationError("customer_phone", "must be 10 digits"))
    assert status == 422
    assert out["field"] == "customer_phone"
    assert out["error"] == "RequestValidationError"
    assert out["state"] == "rejected_invalid"
