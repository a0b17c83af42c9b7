"""
Checkout types — cart in, redirect out.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto


@dataclass(frozen=True, slots=True)
class CartItem:
    """A single product the buyer wants to pay for."""

    product_id: str
    price: Decimal
    quantity: int
    buyer_email: str
    name: str
    description: str | None = None
    image: str | None = None


@dataclass(frozen=True, slots=True)
class CheckoutRedirect:
    """Where to send the buyer. Nothing is written locally."""

    session_id: str
    redirect_url: str


class CheckoutErrorKind(Enum):
    """Kinds of checkout errors."""

    INVALID_CART = auto()  # Rejected before reaching the processor
    UPSTREAM_PAYMENT = auto()  # Processor rejected, unreachable or timed out


@dataclass(frozen=True, slots=True)
class CheckoutError:
    """Checkout error."""

    kind: CheckoutErrorKind
    message: str
    cause: object | None = None


__all__ = (
    "CartItem",
    "CheckoutRedirect",
    "CheckoutErrorKind",
    "CheckoutError",
)
