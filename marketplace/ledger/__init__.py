"""
Ledger — products and their available stock.

    from marketplace import ledger as L

    ledger = L.MemoryLedger([product])
    remaining = await ledger.decrement_quantity(product.id)  # Ok(2)

Stock never goes below zero: a decrement that would do so
returns Error(INSUFFICIENT_STOCK) and changes nothing.

    await ledger.take_stock(product.id, key="pi_123")  # Ok(True)
    await ledger.take_stock(product.id, key="pi_123")  # Ok(False)

take_stock decrements at most once per key.
"""

from marketplace.ledger._types import (
    Seller,
    Product,
    LedgerErrorKind,
    LedgerError,
)
from marketplace.ledger._store import (
    Ledger,
    MemoryLedger,
)
from marketplace.ledger._sqlalchemy import (
    ProductTable,
    StockTakeTable,
    SQLAlchemyLedger,
)

__all__ = (
    # Types
    "Seller",
    "Product",
    "LedgerErrorKind",
    "LedgerError",
    # Stores
    "Ledger",
    "MemoryLedger",
    "ProductTable",
    "StockTakeTable",
    "SQLAlchemyLedger",
)
