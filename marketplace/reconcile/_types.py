"""
Reconcile types — result and error of turning a paid session into an order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


@dataclass(frozen=True, slots=True)
class Reconciliation:
    """
    Successful reconciliation.

    Note: created=False means the order already existed (repeat call or
    lost race). Callers get the same shape either way.
    """

    transaction_id: str
    order_id: str
    created: bool


class ReconcileErrorKind(Enum):
    """Kinds of reconciliation errors."""

    UPSTREAM_PAYMENT = auto()  # Processor unreachable, rejected or timed out
    SESSION_NOT_FOUND = auto()  # Processor has no such session
    MALFORMED_SESSION = auto()  # Metadata missing product or buyer
    PRODUCT_NOT_FOUND = auto()  # Product deleted since checkout
    PAYMENT_INCOMPLETE = auto()  # Session not paid yet, retry later
    INSUFFICIENT_STOCK = auto()  # Order kept, stock could not be taken
    STORE_ERROR = auto()  # Order store or ledger backend failed


@dataclass(frozen=True, slots=True)
class ReconcileError:
    """
    Reconciliation error.

    order_id is set when the order exists but its stock could not be taken.
    The next call for the session retries the take.
    """

    kind: ReconcileErrorKind
    message: str
    session_id: str | None = None
    transaction_id: str | None = None
    order_id: str | None = None
    cause: object | None = None

    @property
    def retryable(self) -> bool:
        """Whether calling again later can succeed on its own."""
        return self.kind in (
            ReconcileErrorKind.UPSTREAM_PAYMENT,
            ReconcileErrorKind.PAYMENT_INCOMPLETE,
            ReconcileErrorKind.STORE_ERROR,
        )


__all__ = (
    "Reconciliation",
    "ReconcileErrorKind",
    "ReconcileError",
)
