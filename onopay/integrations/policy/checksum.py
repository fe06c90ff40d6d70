"""
Checksum signing and verification.

The recipe is fixed by contract with Onopay and must match theirs byte for byte:
- take the values of CHECKSUM_FIELDS that are present, in this order
- join them with "|"
- append "|" and the shared secret
- SHA-512, lower-case hex

There is no version negotiation. Changing the field list or the order makes
every response fail verification.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from enum import Enum
from typing import Any, Dict, Mapping

from onopay.integrations.exceptions import SecurityViolationError

logger = logging.getLogger(__name__)

CHECKSUM_KEY = "checksum"
DELIMITER = "|"

CHECKSUM_FIELDS = (
    "merchant_id",
    "api_key",
    "order_id",
    "amount",
    "currency",
    "customer_email",
    "customer_phone",
    "payment_method",
    "gst_number",
)


def wire_value(value: Any) -> str:
    """Text form sent to the gateway; enum members go out as their value."""
    if isinstance(value, Enum):
        value = value.value
    return str(value)


def checksum_input(fields: Mapping[str, Any]) -> str:
    values = [wire_value(fields[key]) for key in CHECKSUM_FIELDS if fields.get(key) is not None]
    return DELIMITER.join(values)


def generate_checksum(fields: Mapping[str, Any], secret: str) -> str:
    to_hash = f"{checksum_input(fields)}{DELIMITER}{secret}"
    return hashlib.sha512(to_hash.encode("utf-8")).hexdigest()


def sign_fields(fields: Mapping[str, Any], secret: str) -> Dict[str, str]:
    """Return a copy of `fields` with the checksum appended as the last key."""
    signed = {
        key: wire_value(value) for key, value in fields.items() if key != CHECKSUM_KEY and value is not None
    }
    signed[CHECKSUM_KEY] = generate_checksum(signed, secret)
    return signed


def verify_response_checksum(response: Mapping[str, Any], secret: str) -> Dict[str, Any]:
    """
    Verify an inbound response against the response-signing secret.

    Returns the response fields without the checksum. Raises
    SecurityViolationError if the checksum is missing or does not match;
    nothing in the response should be read before this passes.
    """
    received = response.get(CHECKSUM_KEY)
    if received is None or (isinstance(received, str) and not received.strip()):
        logger.error("Rejected gateway response: checksum missing")
        raise SecurityViolationError("Checksum missing in response")

    unsigned = {key: value for key, value in response.items() if key != CHECKSUM_KEY}
    expected = generate_checksum(unsigned, secret)

    if not hmac.compare_digest(str(received).encode("utf-8"), expected.encode("utf-8")):
        logger.error("Rejected gateway response: checksum mismatch")
        raise SecurityViolationError("Checksum verification failed. Possible tampering.")

    return unsigned
