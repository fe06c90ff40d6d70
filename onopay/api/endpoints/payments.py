import logging
import os
from decimal import Decimal
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from onopay.api.rendering import render_redirect_form
from onopay.error_handler import ErrorHandler
from onopay.integrations.clients.mocks.payments import MockOnopayGateway
from onopay.integrations.clients.real_http.payments import OnopayClient
from onopay.integrations.contracts.interfaces import (
    MandateFrequency,
    MandateRequest,
    MandateType,
    PaymentInitiation,
    PaymentMethod,
    RefundRequest,
    UPICollectRequest,
    UPIFlow,
)
from onopay.integrations.contracts.payments import generate_order_id
from onopay.integrations.exceptions import GatewayError, ResponseFormatError
from onopay.integrations.policy.response_wrappers import PaymentResult
from onopay.utils.config_loader import load_gateway_config

logger = logging.getLogger(__name__)

api = APIRouter()
payments_api = api

error_handler = ErrorHandler()

_gateway_client: Optional[OnopayClient] = None


class PaymentInitiateRequest(BaseModel):
    order_id: Optional[str] = Field(default=None, description="Generated when omitted")
    amount: Decimal
    customer_name: str
    customer_email: str
    customer_phone: str = Field(..., description="10-digit Indian mobile number")
    redirect_url: str
    payment_method: str = PaymentMethod.UPI.value
    description: str = "Payment for Order"
    additional_params: Dict[str, str] = Field(default_factory=dict)


class UPICollectBody(BaseModel):
    order_id: Optional[str] = None
    amount: Decimal
    customer_phone: str
    redirect_url: str
    description: str = "UPI Payment"
    upi_flow: str = UPIFlow.COLLECT.value


class MandateBody(BaseModel):
    order_id: Optional[str] = None
    amount: Decimal
    customer_name: str
    customer_email: str
    customer_phone: str
    bank_account: str
    ifsc_code: str
    start_date: str = Field(..., description="YYYY-MM-DD")
    end_date: str = Field(..., description="YYYY-MM-DD")
    mandate_type: str = MandateType.NACH.value
    frequency: str = MandateFrequency.MONTHLY.value


class RefundBody(BaseModel):
    order_id: str
    transaction_id: str
    amount: Decimal
    reason: str = ""


def _should_use_mock_gateway() -> bool:
    mode = os.getenv("INTEGRATIONS_MODE", "").strip().lower()
    return mode in {"mock", "test"}


def get_gateway_client() -> OnopayClient:
    global _gateway_client
    if _gateway_client is None:
        config = load_gateway_config()
        if _should_use_mock_gateway():
            logger.info("Using mock Onopay gateway (INTEGRATIONS_MODE=%s)", os.getenv("INTEGRATIONS_MODE"))
            _gateway_client = OnopayClient(config, transport=MockOnopayGateway(config).transport())
        else:
            _gateway_client = OnopayClient(config)
    return _gateway_client


def _http_error(exc: Exception, **context: Any) -> HTTPException:
    status_code, detail = error_handler.handle_exception(exc, context=context)
    return HTTPException(status_code=status_code, detail=detail)


def _result_to_dict(result: PaymentResult) -> Dict[str, Any]:
    return result.model_dump(mode="json")


async def _read_gateway_payload(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = await request.json()
        except ValueError as e:
            raise ResponseFormatError("Callback body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise ResponseFormatError("Callback body must be a JSON object")
        return payload
    try:
        body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as e:
        raise ResponseFormatError("Callback body is not valid UTF-8") from e
    return dict(parse_qsl(body, keep_blank_values=True))


@api.post("/initiate", tags=["Payments"], response_class=HTMLResponse)
async def initiate_payment(request: PaymentInitiateRequest, client: OnopayClient = Depends(get_gateway_client)):
    initiation = PaymentInitiation(
        order_id=request.order_id or generate_order_id(),
        amount=request.amount,
        customer_name=request.customer_name,
        customer_email=request.customer_email,
        customer_phone=request.customer_phone,
        redirect_url=request.redirect_url,
        payment_method=request.payment_method,
        description=request.description,
        additional_params=request.additional_params,
    )
    try:
        signed = client.build_payment_form(initiation)
    except GatewayError as e:
        raise _http_error(e, order_id=initiation.order_id) from e
    return HTMLResponse(render_redirect_form(signed))


@api.post("/upi/collect", tags=["Payments"])
async def upi_collect(request: UPICollectBody, client: OnopayClient = Depends(get_gateway_client)):
    collect = UPICollectRequest(
        order_id=request.order_id or generate_order_id("UPI"),
        amount=request.amount,
        customer_phone=request.customer_phone,
        redirect_url=request.redirect_url,
        description=request.description,
        upi_flow=request.upi_flow,
    )
    try:
        result = await client.initiate_upi_payment(collect)
    except GatewayError as e:
        raise _http_error(e, order_id=collect.order_id) from e
    return _result_to_dict(result)


@api.post("/mandates", tags=["Payments"])
async def create_mandate(request: MandateBody, client: OnopayClient = Depends(get_gateway_client)):
    mandate = MandateRequest(
        order_id=request.order_id or generate_order_id("MDT"),
        amount=request.amount,
        customer_name=request.customer_name,
        customer_email=request.customer_email,
        customer_phone=request.customer_phone,
        bank_account=request.bank_account,
        ifsc_code=request.ifsc_code,
        start_date=request.start_date,
        end_date=request.end_date,
        mandate_type=request.mandate_type,
        frequency=request.frequency,
    )
    try:
        result = await client.create_mandate(mandate)
    except GatewayError as e:
        raise _http_error(e, order_id=mandate.order_id) from e
    return _result_to_dict(result)


@api.post("/refunds", tags=["Payments"])
async def initiate_refund(request: RefundBody, client: OnopayClient = Depends(get_gateway_client)):
    refund = RefundRequest(
        order_id=request.order_id,
        transaction_id=request.transaction_id,
        amount=request.amount,
        reason=request.reason,
    )
    try:
        result = await client.initiate_refund(refund)
    except GatewayError as e:
        raise _http_error(e, order_id=refund.order_id) from e
    return _result_to_dict(result)


@api.get("/{order_id}/status", tags=["Payments"])
async def payment_status(order_id: str, client: OnopayClient = Depends(get_gateway_client)):
    try:
        result = await client.check_status(order_id)
    except GatewayError as e:
        raise _http_error(e, order_id=order_id) from e
    return _result_to_dict(result)


@api.post("/callback", tags=["Payments"])
@api.post("/webhook", tags=["Payments"])
async def payment_callback(request: Request, client: OnopayClient = Depends(get_gateway_client)):
    """
    Receiver for the gateway's redirect callback (form-encoded) and webhook (JSON).
    The checksum is verified before any field is used.
    """
    try:
        payload = await _read_gateway_payload(request)
        result = client.handle_payment_response(payload)
    except GatewayError as e:
        raise _http_error(e, path=request.url.path) from e
    return _result_to_dict(result)
