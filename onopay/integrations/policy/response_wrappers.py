from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from onopay.integrations.contracts.interfaces import PaymentOutcome, PaymentState
from onopay.integrations.contracts.payments import state_for_outcome
from onopay.integrations.exceptions import ResponseFormatError

_STATUS_CODES: Dict[str, PaymentOutcome] = {
    "00": PaymentOutcome.SUCCESS,
    "SUCCESS": PaymentOutcome.SUCCESS,
    "TXN_SUCCESS": PaymentOutcome.SUCCESS,
    "01": PaymentOutcome.FAILED,
    "FAILURE": PaymentOutcome.FAILED,
    "TXN_FAILURE": PaymentOutcome.FAILED,
    "02": PaymentOutcome.PENDING,
    "PENDING": PaymentOutcome.PENDING,
    "TXN_PENDING": PaymentOutcome.PENDING,
    "UPI_PENDING": PaymentOutcome.UPI_PENDING,
}


class PaymentResult(BaseModel):
    status: PaymentOutcome
    message: str
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None
    upi_reference: Optional[str] = None
    bank_reference: Optional[str] = None
    gst_amount: Decimal = Decimal("0")
    tds_amount: Decimal = Decimal("0")
    invoice_number: Optional[str] = None
    state: PaymentState
    raw: Dict[str, Any] = Field(default_factory=dict)


def parse_response_body(body: str) -> Dict[str, Any]:
    """Decode a gateway reply body into a field mapping."""
    if not body or not body.strip():
        raise ResponseFormatError("Received empty response from payment gateway")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ResponseFormatError(f"Invalid JSON response from payment gateway: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ResponseFormatError(
            f"Expected a JSON object from payment gateway, got {type(data).__name__}",
        )
    return data


def interpret_status_code(status_code: Any) -> PaymentOutcome:
    # Unrecognised codes are not errors: the gateway may introduce new ones.
    if status_code is None:
        return PaymentOutcome.UNKNOWN
    return _STATUS_CODES.get(str(status_code), PaymentOutcome.UNKNOWN)


def normalize_gateway_response(raw: Dict[str, Any]) -> PaymentResult:
    """
    Build a PaymentResult from a response whose checksum has already been verified.
    The untouched mapping is kept on `raw` for audit.
    """
    outcome = interpret_status_code(raw.get("status_code"))

    return _build_model(
        PaymentResult,
        {
            "status": outcome,
            "message": str(_first_non_empty(raw, "message", default="No message from gateway")),
            "order_id": _optional_str(raw, "order_id"),
            "transaction_id": _optional_str(raw, "transaction_id"),
            "payment_method": _optional_str(raw, "payment_method"),
            "upi_reference": _optional_str(raw, "upi_reference_id"),
            "bank_reference": _optional_str(raw, "bank_reference_number"),
            "gst_amount": _coerce_amount(raw.get("gst_amount"), "gst_amount"),
            "tds_amount": _coerce_amount(raw.get("tds_amount"), "tds_amount"),
            "invoice_number": _optional_str(raw, "invoice_number"),
            "state": state_for_outcome(outcome),
            "raw": dict(raw),
        },
        raw,
    )


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = _first_non_empty(data, key)
    return None if value is None else str(value)


def _coerce_amount(value: Any, label: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ResponseFormatError(f"Invalid {label}: {value!r}") from exc


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise ResponseFormatError(f"Response validation failed: {exc}", payload=raw) from exc
