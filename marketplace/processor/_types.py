"""
Payment processor types — sessions as the processor reports them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto


# Metadata keys written at checkout and read back at reconciliation.
METADATA_PRODUCT_ID = "product_id"
METADATA_BUYER_EMAIL = "buyer_email"


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Session
# ═══════════════════════════════════════════════════════════════════════════════


class SessionStatus(Enum):
    """Processor-side session status."""

    OPEN = "open"
    COMPLETE = "complete"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class PaymentSession:
    """
    Checkout session owned by the processor.

    Note: transaction_id is only set once the buyer has paid.
    amount_total is in minor units (cents).
    """

    id: str
    status: SessionStatus
    amount_total: int
    currency: str
    customer_email: str | None = None
    transaction_id: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    redirect_url: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETE


# ═══════════════════════════════════════════════════════════════════════════════
# Session Request — what checkout asks for
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SessionRequest:
    """One-line-item checkout session request."""

    unit_amount: int
    quantity: int
    currency: str
    customer_email: str
    name: str
    success_url: str
    cancel_url: str
    description: str | None = None
    image: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    @property
    def amount_total(self) -> int:
        return self.unit_amount * self.quantity


@dataclass(frozen=True, slots=True)
class CreatedSession:
    """Processor reply to create_session."""

    session_id: str
    redirect_url: str


# ═══════════════════════════════════════════════════════════════════════════════
# Processor Error
# ═══════════════════════════════════════════════════════════════════════════════


class ProcessorErrorKind(Enum):
    """Kinds of processor errors."""

    NOT_FOUND = auto()  # No session with this id
    REJECTED = auto()  # Processor refused the request
    UNAVAILABLE = auto()  # Network failure or outage


@dataclass(frozen=True, slots=True)
class ProcessorError:
    """Payment processor error."""

    kind: ProcessorErrorKind
    message: str
    cause: Exception | None = None


__all__ = (
    "METADATA_PRODUCT_ID",
    "METADATA_BUYER_EMAIL",
    "SessionStatus",
    "PaymentSession",
    "SessionRequest",
    "CreatedSession",
    "ProcessorErrorKind",
    "ProcessorError",
)
