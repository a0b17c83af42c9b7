"""
Order store — typed storage protocol.

Orders are append-only: insert once per transaction id, read many times.
All methods return Result for explicit error handling.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, UTC
from typing import Protocol

from kungfu import Result, Ok, Error

from marketplace.orders._types import Order, OrderDraft, OrderConflict, StoreError


# ═══════════════════════════════════════════════════════════════════════════════
# Order Store Protocol — Typed, Result-based
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStore(Protocol):
    """
    Order store protocol.

    Note: insert_unique is the uniqueness gate for reconciliation.
    It must be a single atomic insert-if-absent keyed on transaction_id.
    A check-then-insert pair is not enough.
    """

    async def get(self, order_id: str) -> Result[Order | None, StoreError]:
        """Get order by id. Returns Ok(None) if missing."""
        ...

    async def find_by_transaction_id(
        self, transaction_id: str
    ) -> Result[Order | None, StoreError]:
        """Get order by transaction id. Returns Ok(None) if missing."""
        ...

    async def insert_unique(
        self, draft: OrderDraft
    ) -> Result[Order, OrderConflict | StoreError]:
        """
        Insert if no order has this transaction id.

        Returns Ok(order) when this call created it.
        Returns Error(OrderConflict(existing)) when another call got there first.
        """
        ...

    async def find_by_buyer(self, buyer_email: str) -> Result[list[Order], StoreError]:
        """Orders placed by a buyer."""
        ...

    async def find_by_seller(self, email_or_id: str) -> Result[list[Order], StoreError]:
        """Orders for a seller's products (matched on seller email or id)."""
        ...


def new_order_id() -> str:
    return f"ord_{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(UTC)


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Order Store — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryOrderStore:
    """
    In-memory order store.

    Note: Single-instance only. Indexed by transaction id;
    the lock makes insert_unique atomic.
    """

    def __init__(self) -> None:
        self._by_tx: dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def get(self, order_id: str) -> Result[Order | None, StoreError]:
        async with self._lock:
            for order in self._by_tx.values():
                if order.id == order_id:
                    return Ok(order)
            return Ok(None)

    async def find_by_transaction_id(
        self, transaction_id: str
    ) -> Result[Order | None, StoreError]:
        async with self._lock:
            return Ok(self._by_tx.get(transaction_id))

    async def insert_unique(
        self, draft: OrderDraft
    ) -> Result[Order, OrderConflict | StoreError]:
        async with self._lock:
            existing = self._by_tx.get(draft.transaction_id)
            if existing is not None:
                return Error(OrderConflict(existing))

            order = Order.from_draft(draft, new_order_id(), utcnow())
            self._by_tx[draft.transaction_id] = order
            return Ok(order)

    async def find_by_buyer(self, buyer_email: str) -> Result[list[Order], StoreError]:
        async with self._lock:
            return Ok([o for o in self._by_tx.values() if o.buyer_email == buyer_email])

    async def find_by_seller(self, email_or_id: str) -> Result[list[Order], StoreError]:
        async with self._lock:
            return Ok([o for o in self._by_tx.values() if o.seller.matches(email_or_id)])

    def __len__(self) -> int:
        return len(self._by_tx)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "OrderStore",
    "MemoryOrderStore",
    "new_order_id",
    "utcnow",
)
