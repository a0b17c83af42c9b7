"""Test data builders."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from kungfu import Error, Result

from marketplace.ledger import Ledger, LedgerError, LedgerErrorKind, Product, Seller
from marketplace.processor import (
    METADATA_PRODUCT_ID,
    METADATA_BUYER_EMAIL,
    PaymentSession,
    SessionStatus,
)


SELLER = Seller(id="seller-1", email="seller@example.com", name="Green Thumb")
BUYER = "buyer@example.com"


def make_product(
    product_id: str = "plant-1",
    *,
    quantity: int = 3,
    price: str = "19.99",
    name: str = "Boston Fern",
    category: str = "Indoor",
    seller: Seller = SELLER,
) -> Product:
    return Product(
        id=product_id,
        name=name,
        category=category,
        price=Decimal(price),
        quantity=quantity,
        seller=seller,
        image=f"https://img.example/{product_id}.jpg",
    )


def make_session(
    session_id: str = "cs_1",
    *,
    status: SessionStatus = SessionStatus.COMPLETE,
    transaction_id: str | None = "tx_1",
    product_id: str | None = "plant-1",
    buyer_email: str | None = BUYER,
    amount_total: int = 1999,
) -> PaymentSession:
    metadata: dict[str, str] = {}
    if product_id is not None:
        metadata[METADATA_PRODUCT_ID] = product_id
    if buyer_email is not None:
        metadata[METADATA_BUYER_EMAIL] = buyer_email
    return PaymentSession(
        id=session_id,
        status=status,
        amount_total=amount_total,
        currency="usd",
        customer_email=buyer_email,
        transaction_id=transaction_id if status is SessionStatus.COMPLETE else None,
        metadata=metadata,
    )


class FlakyLedger:
    """Wraps a ledger; the first `failures` stock takes fail with a store error."""

    def __init__(self, inner: Ledger, *, failures: int = 1) -> None:
        self._inner = inner
        self.failures = failures

    async def take_stock(
        self, product_id: str, *, key: str, by: int = 1
    ) -> Result[bool, LedgerError]:
        if self.failures > 0:
            self.failures -= 1
            return Error(
                LedgerError(LedgerErrorKind.STORE_ERROR, "database is locked", product_id)
            )
        return await self._inner.take_stock(product_id, key=key, by=by)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)
