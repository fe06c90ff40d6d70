"""
Request builder for the Onopay gateway.

Validates an action-specific field set, lays the fields out in the order the
gateway expects, and signs them with the request secret. Pure: no I/O, no
shared state. A validation failure raises RequestValidationError naming the
offending field, before anything is signed or sent.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, Mapping

from onopay.integrations.contracts.interfaces import (
    Amount,
    GatewayAction,
    MandateFrequency,
    MandateRequest,
    MandateType,
    PaymentInitiation,
    PaymentMethod,
    RefundRequest,
    SignedRequest,
    StatusQuery,
    UPICollectRequest,
    UPIFlow,
)
from onopay.integrations.contracts.payments import format_amount
from onopay.integrations.exceptions import RequestValidationError
from onopay.integrations.policy.checksum import CHECKSUM_FIELDS, CHECKSUM_KEY, sign_fields
from onopay.utils.config_loader import GatewayConfig

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"[0-9]{10}")
IFSC_PATTERN = re.compile(r"[A-Z]{4}0[A-Z0-9]{6}")

SENSITIVE_KEYS = {"api_key", CHECKSUM_KEY, "salt_key_request", "salt_key_response", "bank_account"}


def redact_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of `fields` that is safe to log."""
    return {key: ("***" if key in SENSITIVE_KEYS else value) for key, value in fields.items()}


# ---------------------------------------------------------------------------
# Validation rules
# ---------------------------------------------------------------------------

def require_identifier(value: Any, field: str, label: str) -> str:
    if value is None or not str(value).strip():
        raise RequestValidationError(field, f"{label} cannot be empty")
    return str(value).strip()


def require_positive_amount(value: Amount, field: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value).strip())
        rounded = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) if amount.is_finite() else None
    except (InvalidOperation, ValueError) as exc:
        raise RequestValidationError(field, f"Invalid amount: {value!r}") from exc
    if rounded is None or rounded <= 0:
        raise RequestValidationError(field, "Amount must be greater than zero")
    return amount


def require_phone(value: str, field: str = "customer_phone") -> str:
    if not PHONE_PATTERN.fullmatch(value or ""):
        raise RequestValidationError(field, "Indian phone number must be 10 digits")
    return value


def require_ifsc(value: str, field: str = "ifsc_code") -> str:
    if not IFSC_PATTERN.fullmatch(value or ""):
        raise RequestValidationError(field, "Invalid IFSC code format")
    return value


def require_choice(value: Any, allowed: Iterable[str], field: str) -> str:
    """Plain string form of `value`; enum members are reduced to their value."""
    if isinstance(value, Enum):
        value = value.value
    choices = [c.value if isinstance(c, Enum) else c for c in allowed]
    if value not in choices:
        raise RequestValidationError(field, f"Invalid {field} '{value}'. Must be one of: {', '.join(choices)}")
    return value


def require_iso_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise RequestValidationError(field, f"{field} must be an ISO date (YYYY-MM-DD)") from exc


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class RequestBuilder:
    def __init__(self, config: GatewayConfig):
        self.config = config

    def _base_fields(self, order_id: str) -> Dict[str, Any]:
        return {
            "merchant_id": self.config.merchant_id,
            "api_key": self.config.api_key,
            "order_id": order_id,
        }

    def _require_compliance(self, amount: Decimal) -> None:
        if amount > self.config.high_value_threshold and not self.config.pan_number:
            raise RequestValidationError(
                "pan_number",
                f"PAN number is required for transactions above {self.config.high_value_threshold} {self.config.currency}",
            )

    def _gst_fields(self) -> Dict[str, Any]:
        return {
            "gst_enabled": "1" if self.config.gst_enabled else "0",
            "gst_number": self.config.gst_number or "",
        }

    def _sign(self, action: GatewayAction, fields: Dict[str, Any]) -> SignedRequest:
        signed = sign_fields(fields, self.config.salt_key_request)
        url = self.config.endpoints.url_for(action)
        logger.debug("Signed %s request: %s", action.value, redact_fields(signed))
        return SignedRequest(action=action, url=url, fields=signed)

    def build_payment_initiation(self, initiation: PaymentInitiation) -> SignedRequest:
        order_id = require_identifier(initiation.order_id, "order_id", "Order ID")
        amount = require_positive_amount(initiation.amount)
        require_phone(initiation.customer_phone)
        self._require_compliance(amount)
        payment_method = require_choice(initiation.payment_method, self.config.supported_payment_methods, "payment_method")

        fields = self._base_fields(order_id)
        fields.update({
            "amount": format_amount(amount),
            "currency": self.config.currency,
            "customer_name": initiation.customer_name,
            "customer_email": initiation.customer_email,
            "customer_phone": initiation.customer_phone,
            "redirect_url": initiation.redirect_url,
            "description": initiation.description,
            "payment_method": payment_method,
            "country": self.config.country,
            **self._gst_fields(),
            "pan_number": self.config.pan_number or "",
        })

        if payment_method == PaymentMethod.UPI.value:
            fields["upi_flow"] = UPIFlow.COLLECT.value
            fields["upi_expiry"] = str(self.config.upi_expiry_minutes)

        for key, value in (initiation.additional_params or {}).items():
            if key in CHECKSUM_FIELDS or key == CHECKSUM_KEY:
                raise RequestValidationError(key, f"Additional parameter '{key}' may not override a signed field")
            fields[key] = value

        return self._sign(GatewayAction.PAYMENT_INITIATE, fields)

    def build_upi_collect(self, request: UPICollectRequest) -> SignedRequest:
        order_id = require_identifier(request.order_id, "order_id", "Order ID")
        amount = require_positive_amount(request.amount)
        require_phone(request.customer_phone)
        if amount > self.config.upi_transaction_limit:
            raise RequestValidationError(
                "amount",
                f"UPI payments are limited to {self.config.upi_transaction_limit} {self.config.currency} per transaction",
            )
        upi_flow = require_choice(request.upi_flow, [f.value for f in UPIFlow], "upi_flow")

        fields = self._base_fields(order_id)
        fields.update({
            "amount": format_amount(amount),
            "currency": self.config.currency,
            "customer_phone": request.customer_phone,
            "redirect_url": request.redirect_url,
            "description": request.description,
            "payment_method": PaymentMethod.UPI.value,
            "upi_flow": upi_flow,
            "upi_expiry": str(self.config.upi_expiry_minutes),
        })
        return self._sign(GatewayAction.UPI_COLLECT, fields)

    def build_mandate(self, request: MandateRequest) -> SignedRequest:
        order_id = require_identifier(request.order_id, "order_id", "Mandate ID")
        amount = require_positive_amount(request.amount)
        require_phone(request.customer_phone)
        require_identifier(request.bank_account, "bank_account", "Bank account")
        require_ifsc(request.ifsc_code)
        mandate_type = require_choice(request.mandate_type, [t.value for t in MandateType], "mandate_type")
        frequency = require_choice(request.frequency, [f.value for f in MandateFrequency], "frequency")
        self._require_compliance(amount)

        start = require_iso_date(request.start_date, "start_date")
        end = require_iso_date(request.end_date, "end_date")
        if end < start:
            raise RequestValidationError("end_date", "Mandate end date cannot be before its start date")

        fields = self._base_fields(order_id)
        fields.update({
            "amount": format_amount(amount),
            "currency": self.config.currency,
            "customer_name": request.customer_name,
            "customer_email": request.customer_email,
            "customer_phone": request.customer_phone,
            "bank_account": request.bank_account,
            "ifsc_code": request.ifsc_code,
            "mandate_type": mandate_type,
            "frequency": frequency,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            **self._gst_fields(),
        })
        return self._sign(GatewayAction.MANDATE_CREATE, fields)

    def build_status_query(self, query: StatusQuery) -> SignedRequest:
        order_id = require_identifier(query.order_id, "order_id", "Order ID")
        return self._sign(GatewayAction.PAYMENT_STATUS, self._base_fields(order_id))

    def build_refund(self, request: RefundRequest) -> SignedRequest:
        order_id = require_identifier(request.order_id, "order_id", "Order ID")
        transaction_id = require_identifier(request.transaction_id, "transaction_id", "Transaction ID")
        amount = require_positive_amount(request.amount)

        fields = self._base_fields(order_id)
        fields.update({
            "transaction_id": transaction_id,
            "amount": format_amount(amount),
            "currency": self.config.currency,
            "reason": request.reason,
        })
        return self._sign(GatewayAction.REFUND, fields)
