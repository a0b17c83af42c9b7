"""
Orders — append-only order records, one per payment transaction.

    from marketplace import orders as O

    store = O.MemoryOrderStore()

    match await store.insert_unique(draft):
        case Ok(order):
            ...  # created
        case Error(O.OrderConflict(existing)):
            ...  # someone else created it first
"""

from marketplace.orders._types import (
    OrderStatus,
    OrderDraft,
    Order,
    StoreError,
    OrderConflict,
)
from marketplace.orders._store import (
    OrderStore,
    MemoryOrderStore,
)
from marketplace.orders._sqlalchemy import (
    OrderTable,
    SQLAlchemyOrderStore,
)

__all__ = (
    # Types
    "OrderStatus",
    "OrderDraft",
    "Order",
    "StoreError",
    "OrderConflict",
    # Stores
    "OrderStore",
    "MemoryOrderStore",
    "OrderTable",
    "SQLAlchemyOrderStore",
)
