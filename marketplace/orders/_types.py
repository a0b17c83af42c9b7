"""
Order types — persisted orders, drafts, store errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from marketplace.ledger._types import Seller


# ═══════════════════════════════════════════════════════════════════════════════
# Order Status
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    """Order lifecycle status. Reconciliation only ever writes PENDING."""

    PENDING = "pending"


# ═══════════════════════════════════════════════════════════════════════════════
# Order Draft — what reconciliation asks the store to insert
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """
    Order before insertion.

    Note: name/category/image/seller are a snapshot of the product at
    reconciliation time. Later product edits don't touch existing orders.
    """

    product_id: str
    transaction_id: str
    buyer_email: str
    seller: Seller
    name: str
    category: str
    price: Decimal
    quantity: int = 1
    status: OrderStatus = OrderStatus.PENDING
    image: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Order — persisted, immutable
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    """Persisted order. One per transaction_id."""

    id: str
    product_id: str
    transaction_id: str
    buyer_email: str
    seller: Seller
    name: str
    category: str
    price: Decimal
    quantity: int
    status: OrderStatus
    created_at: datetime
    image: str | None = None

    @staticmethod
    def from_draft(draft: OrderDraft, order_id: str, created_at: datetime) -> Order:
        return Order(
            id=order_id,
            product_id=draft.product_id,
            transaction_id=draft.transaction_id,
            buyer_email=draft.buyer_email,
            seller=draft.seller,
            name=draft.name,
            category=draft.category,
            price=draft.price,
            quantity=draft.quantity,
            status=draft.status,
            created_at=created_at,
            image=draft.image,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Store Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


@dataclass(frozen=True, slots=True)
class OrderConflict:
    """
    insert_unique lost: an order for this transaction already exists.

    Not a failure for reconciliation, the caller reports `existing` instead.
    """

    existing: Order

    @property
    def message(self) -> str:
        return f"Order already exists for transaction {self.existing.transaction_id}"


__all__ = (
    "OrderStatus",
    "OrderDraft",
    "Order",
    "StoreError",
    "OrderConflict",
)
