"""Error handling helpers for the payment API."""
from typing import Any, Dict, Optional, Tuple
import logging

from onopay.integrations.exceptions import (
    ConfigurationError,
    GatewayError,
    GatewayRejectedError,
    NetworkFailureError,
    RequestValidationError,
    ResponseFormatError,
    SecurityViolationError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (RequestValidationError, 422),
    (SecurityViolationError, 400),
    (GatewayRejectedError, 402),
    (NetworkFailureError, 502),
    (ResponseFormatError, 502),
    (ConfigurationError, 500),
)


class ErrorHandler:
    def status_for(self, exc: Exception) -> int:
        for exc_type, status_code in _STATUS_CODES:
            if isinstance(exc, exc_type):
                return status_code
        return 500

    def handle_exception(self, exc: Exception, context: Optional[Dict[str, Any]] = None) -> Tuple[int, Dict[str, Any]]:
        status_code = self.status_for(exc)
        if not isinstance(exc, GatewayError):
            logger.error("Unhandled exception in payment API: %s", exc, exc_info=True)
            return status_code, {
                "message": "An internal error occurred while processing the payment. Please try again later.",
                "error": "internal_error",
                "metadata": {"error": str(exc), "context": context or {}},
            }

        log = logger.error if status_code >= 500 or isinstance(exc, SecurityViolationError) else logger.info
        log("Payment request failed (%s): %s", type(exc).__name__, exc)

        detail: Dict[str, Any] = {
            "message": exc.message,
            "error": type(exc).__name__,
            "state": exc.state.value,
            "metadata": {"context": context or {}},
        }
        if isinstance(exc, RequestValidationError):
            detail["field"] = exc.field
        if isinstance(exc, NetworkFailureError):
            detail["metadata"]["attempts"] = exc.attempts
        if isinstance(exc, GatewayRejectedError):
            detail["metadata"]["action"] = exc.action
        return status_code, detail
