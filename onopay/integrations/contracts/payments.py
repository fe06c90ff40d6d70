import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, FrozenSet, List, Optional, Tuple

from .interfaces import Amount, PaymentOutcome, PaymentState

"""
Payment contracts.

Lifecycle of one logical payment action and small helpers shared by the
request builder, the real HTTP client and the mock gateway.

A payment is one-shot: it is created, signed, dispatched once (retries live
inside the dispatched phase) and ends in exactly one terminal state.
"""


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

TERMINAL_STATES: FrozenSet[PaymentState] = frozenset({
    PaymentState.VERIFIED_SUCCESS,
    PaymentState.VERIFIED_FAILED,
    PaymentState.VERIFIED_PENDING,
    PaymentState.VERIFIED_UNKNOWN,
    PaymentState.REJECTED_TAMPERED,
    PaymentState.REJECTED_INVALID,
    PaymentState.NETWORK_FAILED,
})

_TRANSITIONS: Dict[PaymentState, FrozenSet[PaymentState]] = {
    PaymentState.CREATED: frozenset({PaymentState.SIGNED, PaymentState.REJECTED_INVALID}),
    PaymentState.SIGNED: frozenset({PaymentState.DISPATCHED}),
    PaymentState.DISPATCHED: TERMINAL_STATES,
}

OUTCOME_STATES: Dict[PaymentOutcome, PaymentState] = {
    PaymentOutcome.SUCCESS: PaymentState.VERIFIED_SUCCESS,
    PaymentOutcome.FAILED: PaymentState.VERIFIED_FAILED,
    PaymentOutcome.PENDING: PaymentState.VERIFIED_PENDING,
    PaymentOutcome.UPI_PENDING: PaymentState.VERIFIED_PENDING,
    PaymentOutcome.UNKNOWN: PaymentState.VERIFIED_UNKNOWN,
}


class LifecycleError(RuntimeError):
    pass


@dataclass
class PaymentLifecycle:
    """Tracks the state history of a single payment action."""
    action: str
    order_id: Optional[str] = None
    state: PaymentState = PaymentState.CREATED
    history: List[Tuple[PaymentState, datetime]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append((self.state, datetime.now(timezone.utc)))

    def advance(self, new_state: PaymentState) -> PaymentState:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise LifecycleError(
                f"Illegal transition {self.state.value} -> {new_state.value} for {self.action}"
            )
        self.state = new_state
        self.history.append((new_state, datetime.now(timezone.utc)))
        return new_state

    @property
    def is_terminal(self) -> bool:
        return is_terminal_state(self.state)


def is_terminal_state(state: PaymentState) -> bool:
    """Return True if the payment has reached a final, non-changeable state."""
    return state in TERMINAL_STATES


def state_for_outcome(outcome: PaymentOutcome) -> PaymentState:
    return OUTCOME_STATES[outcome]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def format_amount(amount: Amount) -> str:
    """Render an amount with exactly two fraction digits, e.g. 1500 -> '1500.00'."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{value:.2f}"


def generate_order_id(prefix: str = "IN") -> str:
    """Prefix + YYYYMMDDHHMMSS + four random digits."""
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    return f"{prefix}{timestamp}{random.randint(1000, 9999)}"


def calculate_gst_amount(amount: Amount, gst_rate: Amount = 18) -> Decimal:
    """GST component of a GST-inclusive amount."""
    value = Decimal(str(amount))
    rate = Decimal(str(gst_rate))
    gst = (value * rate) / (Decimal("100") + rate)
    return gst.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
