"""Marketplace wiring."""

from decimal import Decimal

import pytest

from marketplace import Marketplace, MarketplaceSettings, make_processor
from marketplace.checkout import CartItem
from marketplace.processor import FakeProcessor, StripeProcessor

from tests.factories import BUYER, make_product


def cart() -> CartItem:
    return CartItem(
        product_id="plant-1",
        price=Decimal("19.99"),
        quantity=1,
        buyer_email=BUYER,
        name="Boston Fern",
    )


async def test_in_memory_checkout_then_reconcile() -> None:
    processor = FakeProcessor()
    mp = Marketplace.in_memory([make_product()], processor=processor)

    redirect = (await mp.checkout.create_session(cart())).unwrap()
    processor.complete(redirect.session_id, transaction_id="tx_1")

    rec = (await mp.reconciler.run(redirect.session_id)).unwrap()

    assert rec.created
    orders = (await mp.orders.find_by_buyer(BUYER)).unwrap()
    assert [o.id for o in orders] == [rec.order_id]
    assert (await mp.ledger.get("plant-1")).unwrap().quantity == 2


async def test_start_with_sqlite_and_close(db_url: str) -> None:
    settings = MarketplaceSettings(_env_file=None, database_url=db_url)  # type: ignore[call-arg]
    processor = FakeProcessor()

    async with await Marketplace.start(settings, processor=processor) as mp:
        assert mp.engine is not None
        (await mp.ledger.add(make_product())).unwrap()

        redirect = (await mp.checkout.create_session(cart())).unwrap()
        processor.complete(redirect.session_id, transaction_id="tx_1")

        first = (await mp.reconciler.run(redirect.session_id)).unwrap()
        again = (await mp.reconciler.run(redirect.session_id)).unwrap()

        assert first.created and not again.created
        assert again.order_id == first.order_id

    assert mp.engine is None


def test_make_processor_follows_settings() -> None:
    fake = MarketplaceSettings(_env_file=None)  # type: ignore[call-arg]
    stripe = MarketplaceSettings(  # type: ignore[call-arg]
        _env_file=None, processor="stripe", stripe_secret_key="sk_test_1"
    )

    assert isinstance(make_processor(fake), FakeProcessor)
    assert isinstance(make_processor(stripe), StripeProcessor)


@pytest.mark.parametrize("domain", ["https://plants.example", "https://plants.example/"])
def test_client_domain_reaches_checkout(domain: str) -> None:
    settings = MarketplaceSettings(_env_file=None, client_domain=domain)  # type: ignore[call-arg]
    mp = Marketplace.in_memory(settings=settings)

    assert mp.checkout.request_for(cart()).cancel_url == "https://plants.example/plant/plant-1"
