"""Memory ledger."""

import asyncio

from kungfu import Ok, Error, is_ok, is_err

from marketplace.ledger import LedgerError, LedgerErrorKind, MemoryLedger, Product, Seller

from tests.factories import SELLER, make_product


async def test_get_returns_product(ledger: MemoryLedger, product: Product) -> None:
    assert await ledger.get(product.id) == Ok(product)


async def test_get_missing_is_not_found(ledger: MemoryLedger) -> None:
    match await ledger.get("nope"):
        case Error(LedgerError(kind=kind)):
            assert kind is LedgerErrorKind.NOT_FOUND
        case other:
            raise AssertionError(other)


async def test_decrement_returns_remaining(ledger: MemoryLedger, product: Product) -> None:
    assert await ledger.decrement_quantity(product.id) == Ok(2)
    assert await ledger.decrement_quantity(product.id, by=2) == Ok(0)
    assert (await ledger.get(product.id)).unwrap().quantity == 0


async def test_decrement_never_goes_negative() -> None:
    ledger = MemoryLedger([make_product(quantity=1)])

    match await ledger.decrement_quantity("plant-1", by=2):
        case Error(err):
            assert err.kind is LedgerErrorKind.INSUFFICIENT_STOCK
        case other:
            raise AssertionError(other)

    assert (await ledger.get("plant-1")).unwrap().quantity == 1


async def test_decrement_by_zero_is_invalid(ledger: MemoryLedger, product: Product) -> None:
    match await ledger.decrement_quantity(product.id, by=0):
        case Error(err):
            assert err.kind is LedgerErrorKind.INVALID
        case other:
            raise AssertionError(other)


async def test_decrement_missing_is_not_found(ledger: MemoryLedger) -> None:
    match await ledger.decrement_quantity("nope"):
        case Error(err):
            assert err.kind is LedgerErrorKind.NOT_FOUND
        case other:
            raise AssertionError(other)


async def test_concurrent_decrements_lose_nothing() -> None:
    ledger = MemoryLedger([make_product(quantity=5)])

    results = await asyncio.gather(
        *(ledger.decrement_quantity("plant-1") for _ in range(8))
    )

    ok = [r for r in results if is_ok(r)]
    rejected = [r for r in results if is_err(r)]
    assert len(ok) == 5
    assert len(rejected) == 3
    assert sorted(r.unwrap() for r in ok) == [0, 1, 2, 3, 4]
    assert (await ledger.get("plant-1")).unwrap().quantity == 0


async def test_add_and_list() -> None:
    ledger = MemoryLedger()
    other_seller = Seller(id="s2", email="other@example.com")

    assert is_ok(await ledger.add(make_product("plant-1")))
    assert is_ok(
        await ledger.add(
            Product(
                id="plant-2",
                name="Cactus",
                category="Succulent",
                price=make_product().price,
                quantity=1,
                seller=other_seller,
            )
        )
    )

    assert len((await ledger.list_all()).unwrap()) == 2
    mine = (await ledger.list_by_seller(SELLER.email)).unwrap()
    assert [p.id for p in mine] == ["plant-1"]


async def test_add_rejects_duplicate_and_bad_values(ledger: MemoryLedger, product: Product) -> None:
    for bad in (
        product,
        make_product("plant-2", quantity=-1),
        make_product("plant-3", price="0"),
    ):
        match await ledger.add(bad):
            case Error(err):
                assert err.kind is LedgerErrorKind.INVALID
            case other:
                raise AssertionError(other)


async def test_remove(ledger: MemoryLedger, product: Product) -> None:
    assert await ledger.remove(product.id) == Ok(True)
    assert await ledger.remove(product.id) == Ok(False)
    assert is_err(await ledger.get(product.id))


async def test_take_stock_once_per_key(ledger: MemoryLedger) -> None:
    assert await ledger.take_stock("plant-1", key="tx_1") == Ok(True)
    assert await ledger.take_stock("plant-1", key="tx_1") == Ok(False)
    assert await ledger.take_stock("plant-1", key="tx_2") == Ok(True)

    assert (await ledger.get("plant-1")).unwrap().quantity == 1


async def test_refused_take_can_be_retried() -> None:
    ledger = MemoryLedger([make_product(quantity=0)])

    match await ledger.take_stock("plant-1", key="tx_1"):
        case Error(err):
            assert err.kind is LedgerErrorKind.INSUFFICIENT_STOCK
        case other:
            raise AssertionError(other)

    await ledger.remove("plant-1")
    await ledger.add(make_product(quantity=1))

    assert await ledger.take_stock("plant-1", key="tx_1") == Ok(True)
    assert (await ledger.get("plant-1")).unwrap().quantity == 0


async def test_taken_key_survives_product_removal(ledger: MemoryLedger) -> None:
    await ledger.take_stock("plant-1", key="tx_1")
    await ledger.remove("plant-1")

    assert await ledger.take_stock("plant-1", key="tx_1") == Ok(False)


async def test_concurrent_takes_with_one_key() -> None:
    ledger = MemoryLedger([make_product(quantity=5)])

    results = await asyncio.gather(
        *(ledger.take_stock("plant-1", key="tx_1") for _ in range(6))
    )

    assert [r.unwrap() for r in results].count(True) == 1
    assert (await ledger.get("plant-1")).unwrap().quantity == 4
