"""
Onopay HTTP Client.

Composes the request builder, the retrying transport and response
verification into one call per payment action:
validate -> sign -> dispatch -> verify -> interpret.

Each call is independent; the client keeps no per-payment state, so one
instance can serve concurrent actions.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from onopay.integrations.clients.real_http.transport import GatewayTransport, SleepFn
from onopay.integrations.contracts.interfaces import (
    MandateRequest,
    PaymentGatewayClient,
    PaymentInitiation,
    PaymentState,
    RefundRequest,
    SignedRequest,
    StatusQuery,
    UPICollectRequest,
)
from onopay.integrations.contracts.payments import PaymentLifecycle
from onopay.integrations.exceptions import (
    ConfigurationError,
    GatewayError,
    GatewayRejectedError,
    ResponseFormatError,
)
from onopay.integrations.policy.checksum import verify_response_checksum
from onopay.integrations.policy.request_builder import RequestBuilder
from onopay.integrations.policy.response_wrappers import (
    PaymentResult,
    normalize_gateway_response,
    parse_response_body,
)
from onopay.utils.config_loader import GatewayConfig

logger = logging.getLogger(__name__)


def validate_configuration(config: GatewayConfig) -> None:
    if config.gst_enabled and not config.gst_number:
        raise ConfigurationError("GST number is required for Indian businesses")
    if not config.pan_number:
        raise ConfigurationError("PAN number is required for Indian businesses")
    if config.currency != "INR":
        raise ConfigurationError("Currency must be INR for Indian transactions")
    if config.salt_key_request == config.salt_key_response:
        logger.warning("Request and response salts are identical; check the merchant configuration")


class OnopayClient(PaymentGatewayClient):
    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        validate_configuration(config)
        self.config = config
        self.builder = RequestBuilder(config)
        self.transport = GatewayTransport(
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            transport=transport,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Redirect flow
    # ------------------------------------------------------------------

    def build_payment_form(self, initiation: PaymentInitiation) -> SignedRequest:
        """Signed fields for the browser redirect; rendering is up to the caller."""
        lifecycle = PaymentLifecycle("payment_initiate", order_id=initiation.order_id)
        signed = self._sign(lifecycle, self.builder.build_payment_initiation, initiation)
        logger.info("Prepared payment form for order %s (%s)", signed.order_id, signed.fields["amount"])
        return signed

    def handle_payment_response(self, data: Mapping[str, Any]) -> PaymentResult:
        """Verify and interpret a callback or webhook posted back by the gateway."""
        if not data:
            raise ResponseFormatError("Received empty response from payment gateway")

        verify_response_checksum(data, self.config.salt_key_response)
        result = normalize_gateway_response(dict(data))
        logger.info("Verified gateway response for order %s: %s", result.order_id, result.status.value)
        return result

    # ------------------------------------------------------------------
    # Server-to-server actions
    # ------------------------------------------------------------------

    async def initiate_upi_payment(self, request: UPICollectRequest) -> PaymentResult:
        lifecycle = PaymentLifecycle("upi_collect", order_id=request.order_id)
        signed = self._sign(lifecycle, self.builder.build_upi_collect, request)
        return await self._exchange(lifecycle, signed, require_success=True)

    async def create_mandate(self, request: MandateRequest) -> PaymentResult:
        lifecycle = PaymentLifecycle("mandate_create", order_id=request.order_id)
        signed = self._sign(lifecycle, self.builder.build_mandate, request)
        return await self._exchange(lifecycle, signed, require_success=True)

    async def check_status(self, order_id: str) -> PaymentResult:
        lifecycle = PaymentLifecycle("payment_status", order_id=order_id)
        signed = self._sign(lifecycle, self.builder.build_status_query, StatusQuery(order_id=order_id))
        return await self._exchange(lifecycle, signed)

    async def initiate_refund(self, request: RefundRequest) -> PaymentResult:
        lifecycle = PaymentLifecycle("refund", order_id=request.order_id)
        signed = self._sign(lifecycle, self.builder.build_refund, request)
        return await self._exchange(lifecycle, signed)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _sign(lifecycle: PaymentLifecycle, build, request) -> SignedRequest:
        try:
            signed = build(request)
        except GatewayError as e:
            lifecycle.advance(e.state)
            logger.info("Rejected %s for order %s: %s", lifecycle.action, lifecycle.order_id, e)
            raise
        lifecycle.advance(PaymentState.SIGNED)
        return signed

    async def _exchange(
        self,
        lifecycle: PaymentLifecycle,
        signed: SignedRequest,
        require_success: bool = False,
    ) -> PaymentResult:
        lifecycle.advance(PaymentState.DISPATCHED)
        try:
            body = await self.transport.dispatch(signed.url, signed.fields)
            data = parse_response_body(body)
            verified = self.handle_payment_response(data)
            if require_success and data.get("status") != "success":
                raise GatewayRejectedError(
                    lifecycle.action,
                    str(data.get("message") or f"{lifecycle.action} failed"),
                    payload=data,
                )
        except GatewayError as e:
            lifecycle.advance(e.state)
            logger.warning("%s for order %s ended in %s: %s", lifecycle.action, lifecycle.order_id, e.state.value, e)
            raise

        lifecycle.advance(verified.state)
        logger.info("%s for order %s ended in %s", lifecycle.action, lifecycle.order_id, lifecycle.state.value)
        return verified
