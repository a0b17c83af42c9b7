"""
Ledger types — products, sellers, ledger errors.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum, auto


# ═══════════════════════════════════════════════════════════════════════════════
# Seller — who owns a product
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Seller:
    """Seller reference: stable identifier plus contact email."""

    id: str
    email: str
    name: str | None = None

    def matches(self, email_or_id: str) -> bool:
        return email_or_id in (self.id, self.email)


# ═══════════════════════════════════════════════════════════════════════════════
# Product — sellable item with available quantity
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    """
    A sellable item.

    Invariant: quantity >= 0. The ledger refuses any write that would break it.
    """

    id: str
    name: str
    category: str
    price: Decimal
    quantity: int
    seller: Seller
    image: str | None = None
    description: str | None = None

    def with_quantity(self, quantity: int) -> Product:
        return replace(self, quantity=quantity)


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger Error
# ═══════════════════════════════════════════════════════════════════════════════


class LedgerErrorKind(Enum):
    """Kinds of ledger errors."""

    NOT_FOUND = auto()  # No product with this id
    INSUFFICIENT_STOCK = auto()  # Decrement would take quantity below zero
    INVALID = auto()  # Rejected input (negative quantity, by < 1, duplicate id)
    STORE_ERROR = auto()  # Storage backend error


@dataclass(frozen=True, slots=True)
class LedgerError:
    """Ledger operation error."""

    kind: LedgerErrorKind
    message: str
    product_id: str | None = None
    cause: Exception | None = None

    @staticmethod
    def not_found(product_id: str) -> LedgerError:
        return LedgerError(
            LedgerErrorKind.NOT_FOUND, f"Product not found: {product_id}", product_id
        )

    @staticmethod
    def insufficient_stock(product_id: str, available: int, requested: int) -> LedgerError:
        return LedgerError(
            LedgerErrorKind.INSUFFICIENT_STOCK,
            f"Cannot take {requested} of {product_id}: {available} available",
            product_id,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Seller",
    "Product",
    "LedgerErrorKind",
    "LedgerError",
)
