"""
Gateway error taxonomy.

Every failure raised by the integration layer derives from GatewayError and
carries the terminal PaymentState it puts the payment in. Only
NetworkFailureError is ever retried, and only inside the transport.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from onopay.integrations.contracts.interfaces import PaymentState


class GatewayError(Exception):
    """Base exception for Onopay integration errors"""

    state: PaymentState = PaymentState.REJECTED_INVALID

    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class ConfigurationError(GatewayError):
    """Missing or inconsistent merchant configuration"""


class RequestValidationError(GatewayError):
    """Outbound request rejected before signing"""

    def __init__(self, field: str, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, payload=payload)
        self.field = field


class SecurityViolationError(GatewayError):
    """Checksum absent or mismatched on an inbound response"""

    state = PaymentState.REJECTED_TAMPERED


class NetworkFailureError(GatewayError):
    """Transport error or persistent 5xx after all retries"""

    state = PaymentState.NETWORK_FAILED

    def __init__(
        self,
        message: str,
        *,
        last_error: Optional[BaseException] = None,
        attempts: int = 0,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, payload=payload)
        self.last_error = last_error
        self.attempts = attempts


class ResponseFormatError(GatewayError):
    """Reply body is not the structured data we expect"""


class GatewayRejectedError(GatewayError):
    """Verified reply in which the gateway declined the action (UPI collect, mandate)"""

    state = PaymentState.VERIFIED_FAILED

    def __init__(self, action: str, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, payload=payload)
        self.action = action
