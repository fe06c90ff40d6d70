"""
Onopay gateway - MOCK counterparty.

⚠️  This is a simulated gateway for development and testing.
    It plays the remote side of the contract: it checks inbound request
    checksums with the request salt and signs every reply with the response
    salt, exactly as the real gateway is expected to.

Usage:
    gateway = MockOnopayGateway(config)
    client = OnopayClient(config, transport=gateway.transport())

No network calls are made. Orders live in memory and are lost on restart.
"""

import hmac
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlparse

import httpx

from onopay.integrations.contracts.interfaces import GatewayAction, PaymentMethod
from onopay.integrations.contracts.payments import calculate_gst_amount, format_amount
from onopay.integrations.policy.checksum import CHECKSUM_KEY, generate_checksum, sign_fields
from onopay.utils.config_loader import GatewayConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canned messages
# ---------------------------------------------------------------------------

_MESSAGES: Dict[str, str] = {
    "00": "Transaction successful",
    "01": "Transaction failed",
    "02": "Transaction pending",
    "UPI_PENDING": "Collect request sent to customer UPI app",
}


# ---------------------------------------------------------------------------
# Mock gateway
# ---------------------------------------------------------------------------

class MockOnopayGateway:
    """
    In-memory Onopay gateway.

    Parameters
    ----------
    config : GatewayConfig
        Merchant configuration; the salts and endpoint paths are read from it.
    payment_outcome : str
        Status code reported for payments once they settle. Default "00".
    transient_failures : int
        Number of leading calls answered with HTTP 503. Default 0.
    upi_accepts : bool
        If False, UPI collect requests are declined by the gateway. Default True.
    mandate_accepts : bool
        If False, mandate registrations are declined. Default True.
    """

    def __init__(
        self,
        config: GatewayConfig,
        payment_outcome: str = "00",
        transient_failures: int = 0,
        upi_accepts: bool = True,
        mandate_accepts: bool = True,
    ):
        self._config = config
        self._payment_outcome = payment_outcome
        self._transient_failures = transient_failures
        self._upi_accepts = upi_accepts
        self._mandate_accepts = mandate_accepts

        self.calls: List[httpx.Request] = []
        self._orders: Dict[str, Dict[str, Any]] = {}
        self._routes: Dict[str, GatewayAction] = {
            urlparse(config.endpoints.url_for(action)).path: action for action in GatewayAction
        }

        logger.info("[ONOPAY MOCK] Gateway initialised (payment_outcome=%s)", payment_outcome)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)

        if self._transient_failures > 0:
            self._transient_failures -= 1
            logger.info("[ONOPAY MOCK] Simulating outage for %s", request.url.path)
            return httpx.Response(503, json={"status": "error", "message": "Service temporarily unavailable"})

        action = self._routes.get(request.url.path)
        if action is None:
            return httpx.Response(404, json={"status": "error", "message": f"Unknown endpoint {request.url.path}"})

        fields = self._read_fields(request)
        if not self._request_checksum_ok(fields):
            logger.info("[ONOPAY MOCK] Rejecting %s: bad request checksum", action.value)
            return httpx.Response(400, json=self.sign({
                "status": "failure",
                "status_code": "01",
                "order_id": fields.get("order_id", ""),
                "message": "Request checksum mismatch",
            }))

        handler = {
            GatewayAction.PAYMENT_INITIATE: self._initiate,
            GatewayAction.UPI_COLLECT: self._upi_collect,
            GatewayAction.MANDATE_CREATE: self._create_mandate,
            GatewayAction.PAYMENT_STATUS: self._status,
            GatewayAction.REFUND: self._refund,
        }.get(action)
        if handler is None:
            return httpx.Response(405, json={"status": "error", "message": f"{action.value} is not callable"})

        return httpx.Response(200, json=self.sign(handler(fields)))

    @staticmethod
    def _read_fields(request: httpx.Request) -> Dict[str, str]:
        if request.method == "POST":
            return dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))
        return dict(request.url.params)

    def _request_checksum_ok(self, fields: Mapping[str, str]) -> bool:
        received = fields.get(CHECKSUM_KEY, "")
        unsigned = {k: v for k, v in fields.items() if k != CHECKSUM_KEY}
        expected = generate_checksum(unsigned, self._config.salt_key_request)
        return bool(received) and hmac.compare_digest(received, expected)

    def sign(self, reply: Dict[str, Any]) -> Dict[str, str]:
        reply.setdefault("merchant_id", self._config.merchant_id)
        return sign_fields(reply, self._config.salt_key_response)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _record(self, fields: Mapping[str, str], status_code: str, **extra: Any) -> Dict[str, Any]:
        order = {
            "order_id": fields["order_id"],
            "transaction_id": f"ONO{uuid.uuid4().hex[:12].upper()}",
            "amount": fields.get("amount", "0.00"),
            "currency": fields.get("currency", self._config.currency),
            "payment_method": fields.get("payment_method", PaymentMethod.UPI.value),
            "status_code": status_code,
            **extra,
        }
        self._orders[order["order_id"]] = order
        return order

    def _settlement_fields(self, order: Mapping[str, Any]) -> Dict[str, Any]:
        reply = {
            "order_id": order["order_id"],
            "transaction_id": order["transaction_id"],
            "amount": order["amount"],
            "currency": order["currency"],
            "payment_method": order["payment_method"],
            "status_code": order["status_code"],
            "message": _MESSAGES.get(order["status_code"], "Status unavailable"),
        }
        if order["status_code"] == "00":
            reply["gst_amount"] = str(calculate_gst_amount(order["amount"]))
            reply["tds_amount"] = format_amount(
                Decimal(order["amount"]) * self._config.tds_percentage / Decimal("100")
            )
            reply["invoice_number"] = f"INV-{order['order_id']}"
        if order["payment_method"] == PaymentMethod.UPI.value:
            reply["upi_reference_id"] = order.get("upi_reference_id") or uuid.uuid4().hex[:12]
        else:
            reply["bank_reference_number"] = uuid.uuid4().hex[:16].upper()
        return reply

    def _initiate(self, fields: Mapping[str, str]) -> Dict[str, Any]:
        order = self._record(fields, self._payment_outcome)
        return {"status": "success", **self._settlement_fields(order)}

    def _upi_collect(self, fields: Mapping[str, str]) -> Dict[str, Any]:
        if not self._upi_accepts:
            return {
                "status": "failure",
                "status_code": "01",
                "order_id": fields["order_id"],
                "message": "UPI collect request declined by payer PSP",
            }
        order = self._record(fields, self._payment_outcome, upi_reference_id=uuid.uuid4().hex[:12])
        return {
            "status": "success",
            "status_code": "UPI_PENDING",
            "order_id": order["order_id"],
            "transaction_id": order["transaction_id"],
            "amount": order["amount"],
            "currency": order["currency"],
            "payment_method": PaymentMethod.UPI.value,
            "upi_reference_id": order["upi_reference_id"],
            "message": _MESSAGES["UPI_PENDING"],
        }

    def _create_mandate(self, fields: Mapping[str, str]) -> Dict[str, Any]:
        if not self._mandate_accepts:
            return {
                "status": "failure",
                "status_code": "01",
                "order_id": fields["order_id"],
                "message": "Mandate registration rejected by destination bank",
            }
        return {
            "status": "success",
            "status_code": "02",
            "order_id": fields["order_id"],
            "transaction_id": f"MDT{uuid.uuid4().hex[:12].upper()}",
            "amount": fields.get("amount"),
            "currency": fields.get("currency"),
            "customer_email": fields.get("customer_email"),
            "customer_phone": fields.get("customer_phone"),
            "mandate_type": fields.get("mandate_type"),
            "message": "Mandate registration pending customer authorisation",
        }

    def _status(self, fields: Mapping[str, str]) -> Dict[str, Any]:
        order = self._orders.get(fields["order_id"])
        if order is None:
            return {"status": "failure", "status_code": "NOT_FOUND", "order_id": fields["order_id"], "message": "Order not found"}
        return {"status": "success", **self._settlement_fields(order)}

    def _refund(self, fields: Mapping[str, str]) -> Dict[str, Any]:
        order = self._orders.get(fields["order_id"])
        if order is None or order["transaction_id"] != fields.get("transaction_id"):
            return {"status": "failure", "status_code": "01", "order_id": fields["order_id"], "message": "No matching transaction to refund"}
        if Decimal(fields.get("amount", "0")) > Decimal(order["amount"]):
            return {"status": "failure", "status_code": "01", "order_id": order["order_id"], "message": "Refund exceeds captured amount"}
        return {
            "status": "success",
            "status_code": "02",
            "order_id": order["order_id"],
            "transaction_id": order["transaction_id"],
            "amount": fields["amount"],
            "currency": order["currency"],
            "message": "Refund initiated",
        }

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def build_callback(
        self,
        order_id: str,
        amount: Any,
        status_code: str = "00",
        payment_method: str = PaymentMethod.UPI.value,
        **extra: Any,
    ) -> Dict[str, str]:
        """Signed payload as the gateway posts it back to the merchant redirect URL."""
        order = self._orders.get(order_id) or self._record(
            {"order_id": order_id, "amount": format_amount(amount), "payment_method": payment_method},
            status_code,
        )
        order["status_code"] = status_code
        return self.sign({**self._settlement_fields(order), **extra})

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        return self._orders.get(order_id)
