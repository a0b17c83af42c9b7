"""SQLAlchemy ledger and order store over a SQLite file."""

import asyncio
from decimal import Decimal

import pytest
from kungfu import Ok, Error, is_ok
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace.ledger import LedgerErrorKind, Seller, SQLAlchemyLedger
from marketplace.orders import OrderConflict, OrderDraft, SQLAlchemyOrderStore
from marketplace.processor import FakeProcessor
from marketplace.reconcile import ReconcileErrorKind, reconciler

from tests.factories import BUYER, SELLER, FlakyLedger, make_product, make_session


type Factory = async_sessionmaker[AsyncSession]


@pytest.fixture
async def sql_ledger(session_factory: Factory) -> SQLAlchemyLedger:
    ledger = SQLAlchemyLedger(session_factory)
    (await ledger.add(make_product(quantity=3))).unwrap()
    return ledger


@pytest.fixture
def sql_orders(session_factory: Factory) -> SQLAlchemyOrderStore:
    return SQLAlchemyOrderStore(session_factory)


def draft(tx: str = "tx_1", *, buyer: str = BUYER, seller: Seller = SELLER) -> OrderDraft:
    return OrderDraft(
        product_id="plant-1",
        transaction_id=tx,
        buyer_email=buyer,
        seller=seller,
        name="Boston Fern",
        category="Indoor",
        price=Decimal("19.99"),
        image="https://img.example/plant-1.jpg",
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger
# ═══════════════════════════════════════════════════════════════════════════════


async def test_ledger_roundtrips_product(sql_ledger: SQLAlchemyLedger) -> None:
    product = (await sql_ledger.get("plant-1")).unwrap()

    assert product == make_product(quantity=3)
    assert product.price == Decimal("19.99")


async def test_ledger_decrement_and_floor(sql_ledger: SQLAlchemyLedger) -> None:
    assert await sql_ledger.decrement_quantity("plant-1", by=2) == Ok(1)

    match await sql_ledger.decrement_quantity("plant-1", by=2):
        case Error(err):
            assert err.kind is LedgerErrorKind.INSUFFICIENT_STOCK
        case other:
            raise AssertionError(other)

    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 1


async def test_ledger_decrement_missing(sql_ledger: SQLAlchemyLedger) -> None:
    match await sql_ledger.decrement_quantity("nope"):
        case Error(err):
            assert err.kind is LedgerErrorKind.NOT_FOUND
        case other:
            raise AssertionError(other)


async def test_ledger_concurrent_decrements_stop_at_zero(sql_ledger: SQLAlchemyLedger) -> None:
    results = await asyncio.gather(*(sql_ledger.decrement_quantity("plant-1") for _ in range(6)))

    assert sum(1 for r in results if is_ok(r)) == 3
    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 0


async def test_ledger_add_duplicate_and_listing(sql_ledger: SQLAlchemyLedger) -> None:
    other = Seller(id="seller-2", email="other@example.com")

    match await sql_ledger.add(make_product(quantity=1)):
        case Error(err):
            assert err.kind is LedgerErrorKind.INVALID
        case other_result:
            raise AssertionError(other_result)

    (await sql_ledger.add(make_product("plant-2", seller=other))).unwrap()

    assert len((await sql_ledger.list_all()).unwrap()) == 2
    mine = (await sql_ledger.list_by_seller(SELLER.email)).unwrap()
    assert [p.id for p in mine] == ["plant-1"]


async def test_ledger_remove(sql_ledger: SQLAlchemyLedger) -> None:
    assert await sql_ledger.remove("plant-1") == Ok(True)
    assert await sql_ledger.remove("plant-1") == Ok(False)
    assert not is_ok(await sql_ledger.get("plant-1"))


async def test_ledger_take_stock_once_per_key(sql_ledger: SQLAlchemyLedger) -> None:
    assert await sql_ledger.take_stock("plant-1", key="tx_1") == Ok(True)
    assert await sql_ledger.take_stock("plant-1", key="tx_1") == Ok(False)

    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 2


async def test_ledger_refused_take_records_nothing(session_factory: Factory) -> None:
    ledger = SQLAlchemyLedger(session_factory)
    (await ledger.add(make_product(quantity=0))).unwrap()

    match await ledger.take_stock("plant-1", key="tx_1"):
        case Error(err):
            assert err.kind is LedgerErrorKind.INSUFFICIENT_STOCK
        case other:
            raise AssertionError(other)

    await ledger.remove("plant-1")
    (await ledger.add(make_product(quantity=1))).unwrap()

    assert await ledger.take_stock("plant-1", key="tx_1") == Ok(True)
    assert (await ledger.get("plant-1")).unwrap().quantity == 0


async def test_ledger_concurrent_takes_with_one_key(sql_ledger: SQLAlchemyLedger) -> None:
    results = await asyncio.gather(
        *(sql_ledger.take_stock("plant-1", key="tx_1") for _ in range(5))
    )

    assert [r.unwrap() for r in results].count(True) == 1
    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 2


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


async def test_orders_insert_then_read_back(sql_orders: SQLAlchemyOrderStore) -> None:
    created = (await sql_orders.insert_unique(draft())).unwrap()

    found = (await sql_orders.find_by_transaction_id("tx_1")).unwrap()
    assert found is not None
    assert found.id == created.id
    assert found.price == Decimal("19.99")
    assert found.seller == SELLER
    assert found.image == "https://img.example/plant-1.jpg"
    assert found.created_at.tzinfo is not None

    by_id = (await sql_orders.get(created.id)).unwrap()
    assert by_id is not None
    assert by_id.transaction_id == "tx_1"


async def test_orders_duplicate_returns_existing(sql_orders: SQLAlchemyOrderStore) -> None:
    created = (await sql_orders.insert_unique(draft())).unwrap()

    match await sql_orders.insert_unique(draft()):
        case Error(OrderConflict(existing)):
            assert existing.id == created.id
        case other:
            raise AssertionError(other)


async def test_orders_concurrent_inserts_yield_one(sql_orders: SQLAlchemyOrderStore) -> None:
    results = await asyncio.gather(*(sql_orders.insert_unique(draft()) for _ in range(5)))

    assert sum(1 for r in results if is_ok(r)) == 1
    assert len((await sql_orders.find_by_buyer(BUYER)).unwrap()) == 1


async def test_orders_missing_is_none(sql_orders: SQLAlchemyOrderStore) -> None:
    assert await sql_orders.find_by_transaction_id("tx_missing") == Ok(None)
    assert await sql_orders.get("ord_missing") == Ok(None)


async def test_orders_by_buyer_and_seller(sql_orders: SQLAlchemyOrderStore) -> None:
    other_seller = Seller(id="seller-2", email="other@example.com")
    await sql_orders.insert_unique(draft("tx_1"))
    await sql_orders.insert_unique(draft("tx_2", buyer="someone@example.com"))
    await sql_orders.insert_unique(draft("tx_3", seller=other_seller))

    by_buyer = (await sql_orders.find_by_buyer(BUYER)).unwrap()
    assert {o.transaction_id for o in by_buyer} == {"tx_1", "tx_3"}

    by_email = (await sql_orders.find_by_seller(SELLER.email)).unwrap()
    by_id = (await sql_orders.find_by_seller(SELLER.id)).unwrap()
    assert {o.transaction_id for o in by_email} == {"tx_1", "tx_2"}
    assert {o.id for o in by_id} == {o.id for o in by_email}


# ═══════════════════════════════════════════════════════════════════════════════
# Reconciler over SQL stores
# ═══════════════════════════════════════════════════════════════════════════════


async def test_reconcile_concurrently_over_sql(
    sql_ledger: SQLAlchemyLedger, sql_orders: SQLAlchemyOrderStore
) -> None:
    processor = FakeProcessor(latency=0.01)
    processor.seed(make_session())
    rec = reconciler().processor(processor).orders(sql_orders).ledger(sql_ledger).build()

    results = await asyncio.gather(*(rec.run("cs_1") for _ in range(5)))

    recs = [r.unwrap() for r in results]
    assert sum(1 for r in recs if r.created) == 1
    assert len({r.order_id for r in recs}) == 1
    assert len((await sql_orders.find_by_buyer(BUYER)).unwrap()) == 1
    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 2


async def test_reconcile_repairs_failed_stock_take_over_sql(
    sql_ledger: SQLAlchemyLedger, sql_orders: SQLAlchemyOrderStore
) -> None:
    processor = FakeProcessor()
    processor.seed(make_session())
    rec = (
        reconciler()
        .processor(processor)
        .orders(sql_orders)
        .ledger(FlakyLedger(sql_ledger))
        .build()
    )

    failed = (await rec.run("cs_1")).unwrap_err()

    assert failed.kind is ReconcileErrorKind.STORE_ERROR
    assert failed.order_id is not None
    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 3

    retry = (await rec.run("cs_1")).unwrap()
    again = (await rec.run("cs_1")).unwrap()

    assert retry.order_id == again.order_id == failed.order_id
    assert len((await sql_orders.find_by_buyer(BUYER)).unwrap()) == 1
    assert (await sql_ledger.get("plant-1")).unwrap().quantity == 2
