"""
SQLAlchemy Example — the same flow against a SQLite file.

The unique index on orders.transaction_id is what keeps concurrent
confirmations down to one order.

Run: uv run python examples/sqlalchemy_example.py
"""

import asyncio
import tempfile
from pathlib import Path

from marketplace import Marketplace, MarketplaceSettings
from marketplace.processor import FakeProcessor
from examples._infra import FERN, banner, cart_for, show, run


async def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        settings = MarketplaceSettings(
            database_url=f"sqlite+aiosqlite:///{Path(tmp) / 'shop.db'}",
            client_domain="https://plants.example",
        )
        processor = FakeProcessor()

        async with await Marketplace.start(settings, processor=processor) as mp:
            banner("SQLAlchemy stores")

            (await mp.ledger.add(FERN)).unwrap()

            redirect = (await mp.checkout.create_session(cart_for(FERN))).unwrap()
            processor.complete(redirect.session_id, transaction_id="pi_sqlite_1")

            print("\n1. Three concurrent confirmations:")
            results = await asyncio.gather(
                *(mp.reconciler.run(redirect.session_id) for _ in range(3))
            )
            for result in results:
                show(result)

            print("\n2. State:")
            fern = (await mp.ledger.get(FERN.id)).unwrap()
            order = (await mp.orders.find_by_transaction_id("pi_sqlite_1")).unwrap()
            print(f"   quantity={fern.quantity}")
            if order is not None:
                print(f"   order={order.id} price=${order.price} status={order.status.value}")


if __name__ == "__main__":
    run(main)
