"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from decimal import Decimal

from kungfu import Result, Ok, Error

from marketplace import MarketplaceSettings, configure_logging
from marketplace.checkout import CartItem
from marketplace.ledger import Product, Seller
from marketplace.reconcile import Reconciliation, ReconcileError


# Catalog
SELLER = Seller(id="seller-1", email="grower@example.com", name="Green Thumb")

FERN = Product(
    id="plant-fern",
    name="Boston Fern",
    category="Indoor",
    price=Decimal("19.99"),
    quantity=3,
    seller=SELLER,
    image="https://img.example/fern.jpg",
    description="Likes humidity.",
)

CACTUS = Product(
    id="plant-cactus",
    name="Golden Barrel",
    category="Succulent",
    price=Decimal("12.50"),
    quantity=1,
    seller=SELLER,
)


def cart_for(product: Product, buyer_email: str = "buyer@example.com") -> CartItem:
    return CartItem(
        product_id=product.id,
        price=product.price,
        quantity=1,
        buyer_email=buyer_email,
        name=product.name,
        description=product.description,
        image=product.image,
    )


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def show(result: Result[Reconciliation, ReconcileError]) -> None:
    match result:
        case Ok(rec):
            state = "created" if rec.created else "already existed"
            print(f"   order={rec.order_id} tx={rec.transaction_id} ({state})")
        case Error(err):
            print(f"   error: {err.kind.name}: {err.message}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    configure_logging(MarketplaceSettings(environment="development", log_level="WARNING"))
    asyncio.run(main())
