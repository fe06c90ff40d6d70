from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

Amount = Union[Decimal, float, int, str]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PaymentMethod(str, Enum):
    UPI = "upi"
    NETBANKING = "netbanking"
    CARD = "card"
    WALLET = "wallet"
    NB = "nb"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"


class MandateType(str, Enum):
    NACH = "nach"
    UPI_AUTOPAY = "upi_autopay"


class UPIFlow(str, Enum):
    COLLECT = "collect"
    INTENT = "intent"


class MandateFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"
    AS_PRESENTED = "AS_PRESENTED"


class PaymentOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    UPI_PENDING = "upi_pending"
    UNKNOWN = "unknown"


class GatewayAction(str, Enum):
    PAYMENT_INITIATE = "payment_initiate"
    PAYMENT_STATUS = "payment_status"
    REFUND = "refund"
    UPI_COLLECT = "upi_collect"
    MANDATE_CREATE = "mandate_create"
    WEBHOOK = "webhook"


class PaymentState(str, Enum):
    CREATED = "created"
    SIGNED = "signed"
    DISPATCHED = "dispatched"
    VERIFIED_SUCCESS = "verified_success"
    VERIFIED_FAILED = "verified_failed"
    VERIFIED_PENDING = "verified_pending"
    VERIFIED_UNKNOWN = "verified_unknown"
    REJECTED_TAMPERED = "rejected_tampered"
    REJECTED_INVALID = "rejected_invalid"
    NETWORK_FAILED = "network_failed"


# ---------------------------------------------------------------------------
# Outbound request models
# ---------------------------------------------------------------------------

@dataclass
class PaymentInitiation:
    order_id: str
    amount: Amount
    customer_name: str
    customer_email: str
    customer_phone: str                  # 10 digits, no country code
    redirect_url: str
    payment_method: str = PaymentMethod.UPI.value
    description: str = "Payment for Order"
    additional_params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UPICollectRequest:
    order_id: str
    amount: Amount
    customer_phone: str
    redirect_url: str
    description: str = "UPI Payment"
    upi_flow: str = UPIFlow.COLLECT.value


@dataclass
class MandateRequest:
    order_id: str
    amount: Amount
    customer_name: str
    customer_email: str
    customer_phone: str
    bank_account: str
    ifsc_code: str
    start_date: str                      # ISO format: YYYY-MM-DD
    end_date: str
    mandate_type: str = MandateType.NACH.value
    frequency: str = MandateFrequency.MONTHLY.value


@dataclass
class RefundRequest:
    order_id: str
    transaction_id: str
    amount: Amount
    reason: str = ""


@dataclass
class StatusQuery:
    order_id: str


@dataclass(frozen=True)
class SignedRequest:
    """A finished, signed field set. Read-only; `checksum` is the last key."""

    action: GatewayAction
    url: str
    fields: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def checksum(self) -> str:
        return self.fields["checksum"]

    @property
    def order_id(self) -> Optional[str]:
        return self.fields.get("order_id")

    def as_form(self) -> Dict[str, str]:
        return dict(self.fields)


# ---------------------------------------------------------------------------
# Client interface
# ---------------------------------------------------------------------------

class PaymentGatewayClient(ABC):
    """Operations every gateway client (real or mock-backed) exposes."""

    @abstractmethod
    def build_payment_form(self, initiation: PaymentInitiation) -> SignedRequest:
        ...

    @abstractmethod
    async def initiate_upi_payment(self, request: UPICollectRequest) -> Any:
        ...

    @abstractmethod
    async def create_mandate(self, request: MandateRequest) -> Any:
        ...

    @abstractmethod
    async def check_status(self, order_id: str) -> Any:
        ...

    @abstractmethod
    async def initiate_refund(self, request: RefundRequest) -> Any:
        ...

    @abstractmethod
    def handle_payment_response(self, data: Mapping[str, Any]) -> Any:
        ...
