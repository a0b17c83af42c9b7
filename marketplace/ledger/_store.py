"""
Product ledger — typed storage protocol.

Ledger holds products and their available quantity.
All methods return Result for explicit error handling.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from kungfu import Result, Ok, Error

from marketplace.ledger._types import Product, LedgerError, LedgerErrorKind


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger Protocol — Typed, Result-based
# ═══════════════════════════════════════════════════════════════════════════════


class Ledger(Protocol):
    """
    Product ledger protocol.

    Note: decrement_quantity and take_stock must be atomic relative to
    concurrent decrements of the same product, and must never leave quantity
    below zero.
    """

    async def get(self, product_id: str) -> Result[Product, LedgerError]:
        """Get product. Returns Error(NOT_FOUND) if missing."""
        ...

    async def decrement_quantity(
        self,
        product_id: str,
        by: int = 1,
    ) -> Result[int, LedgerError]:
        """
        Atomically take `by` units of stock.

        Returns Ok(remaining quantity).
        Returns Error(INSUFFICIENT_STOCK) instead of going negative.
        """
        ...

    async def take_stock(
        self,
        product_id: str,
        *,
        key: str,
        by: int = 1,
    ) -> Result[bool, LedgerError]:
        """
        Decrement at most once per key.

        The key is recorded in the same atomic step as the decrement.
        Returns Ok(True) if stock was taken now, Ok(False) if `key` already
        took it. A failed take records nothing, so it can be retried.
        """
        ...

    async def add(self, product: Product) -> Result[Product, LedgerError]:
        """Add a new product to the catalog."""
        ...

    async def remove(self, product_id: str) -> Result[bool, LedgerError]:
        """Delete product. Returns Ok(True) if existed."""
        ...

    async def list_all(self) -> Result[list[Product], LedgerError]:
        """All products in the catalog."""
        ...

    async def list_by_seller(self, seller_email: str) -> Result[list[Product], LedgerError]:
        """Products owned by a seller (matched on email)."""
        ...


def validate_new_product(product: Product) -> LedgerError | None:
    """Shared admission check for add()."""
    if product.quantity < 0:
        return LedgerError(
            LedgerErrorKind.INVALID,
            f"Quantity must be >= 0, got {product.quantity}",
            product.id,
        )
    if product.price <= 0:
        return LedgerError(
            LedgerErrorKind.INVALID,
            f"Price must be positive, got {product.price}",
            product.id,
        )
    return None


def validate_decrement(product_id: str, by: int) -> LedgerError | None:
    if by < 1:
        return LedgerError(
            LedgerErrorKind.INVALID, f"Decrement must be >= 1, got {by}", product_id
        )
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Ledger — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryLedger:
    """
    In-memory product ledger.

    Note: Single-instance only. The lock serializes read-modify-write,
    so two concurrent decrements never lose an update.
    """

    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[str, Product] = {p.id: p for p in products or []}
        self._taken: set[str] = set()
        self._lock = asyncio.Lock()

    async def get(self, product_id: str) -> Result[Product, LedgerError]:
        async with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return Error(LedgerError.not_found(product_id))
            return Ok(product)

    async def decrement_quantity(
        self,
        product_id: str,
        by: int = 1,
    ) -> Result[int, LedgerError]:
        if invalid := validate_decrement(product_id, by):
            return Error(invalid)

        async with self._lock:
            return self._decrement(product_id, by)

    async def take_stock(
        self,
        product_id: str,
        *,
        key: str,
        by: int = 1,
    ) -> Result[bool, LedgerError]:
        if invalid := validate_decrement(product_id, by):
            return Error(invalid)

        async with self._lock:
            if key in self._taken:
                return Ok(False)

            match self._decrement(product_id, by):
                case Error(err):
                    return Error(err)
                case Ok(_):
                    self._taken.add(key)
                    return Ok(True)

    def _decrement(self, product_id: str, by: int) -> Result[int, LedgerError]:
        # Caller holds the lock.
        product = self._products.get(product_id)
        if product is None:
            return Error(LedgerError.not_found(product_id))

        if product.quantity < by:
            return Error(LedgerError.insufficient_stock(product_id, product.quantity, by))

        updated = product.with_quantity(product.quantity - by)
        self._products[product_id] = updated
        return Ok(updated.quantity)

    async def add(self, product: Product) -> Result[Product, LedgerError]:
        if invalid := validate_new_product(product):
            return Error(invalid)

        async with self._lock:
            if product.id in self._products:
                return Error(
                    LedgerError(
                        LedgerErrorKind.INVALID,
                        f"Product already exists: {product.id}",
                        product.id,
                    )
                )
            self._products[product.id] = product
            return Ok(product)

    async def remove(self, product_id: str) -> Result[bool, LedgerError]:
        async with self._lock:
            if product_id in self._products:
                del self._products[product_id]
                return Ok(True)
            return Ok(False)

    async def list_all(self) -> Result[list[Product], LedgerError]:
        async with self._lock:
            return Ok(list(self._products.values()))

    async def list_by_seller(self, seller_email: str) -> Result[list[Product], LedgerError]:
        async with self._lock:
            return Ok([p for p in self._products.values() if p.seller.email == seller_email])


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Ledger",
    "MemoryLedger",
    "validate_new_product",
    "validate_decrement",
)
