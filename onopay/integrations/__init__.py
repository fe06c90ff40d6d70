"""
Integrations layer.
This package contains all code used to communicate with the Onopay payment gateway:
- contracts: request/response shapes and the per-payment lifecycle
- policy: checksum signing/verification, request building, response normalisation
- clients: the real HTTP client and the mock gateway used in development

Key rule:
- Nothing outside this package builds, signs or verifies gateway fields.
- Presentation (the redirect form) only receives a finished SignedRequest.

Switching implementations:
- The selection of mock vs real transport happens in ONE place (onopay/api/endpoints/payments.py).
"""

from .contracts.interfaces import (
    GatewayAction,
    MandateFrequency,
    MandateRequest,
    MandateType,
    PaymentGatewayClient,
    PaymentInitiation,
    PaymentMethod,
    PaymentOutcome,
    PaymentState,
    RefundRequest,
    SignedRequest,
    StatusQuery,
    UPICollectRequest,
    UPIFlow,
)
from .contracts.payments import (
    PaymentLifecycle,
    calculate_gst_amount,
    format_amount,
    generate_order_id,
    is_terminal_state,
)
from .exceptions import (
    ConfigurationError,
    GatewayError,
    GatewayRejectedError,
    NetworkFailureError,
    RequestValidationError,
    ResponseFormatError,
    SecurityViolationError,
)

__all__ = [
    # contracts
    "GatewayAction", "MandateFrequency", "MandateRequest", "MandateType",
    "PaymentGatewayClient", "PaymentInitiation", "PaymentMethod", "PaymentOutcome",
    "PaymentState", "RefundRequest", "SignedRequest", "StatusQuery",
    "UPICollectRequest", "UPIFlow",
    # lifecycle + helpers
    "PaymentLifecycle", "calculate_gst_amount", "format_amount",
    "generate_order_id", "is_terminal_state",
    # errors
    "ConfigurationError", "GatewayError", "GatewayRejectedError", "NetworkFailureError",
    "RequestValidationError", "ResponseFormatError", "SecurityViolationError",
]
