"""Shared fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace import Policy, create_database
from marketplace.ledger import Product, MemoryLedger
from marketplace.orders import MemoryOrderStore
from marketplace.processor import FakeProcessor
from marketplace.reconcile import Reconciler, reconciler

from tests.factories import make_product


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def product() -> Product:
    return make_product()


@pytest.fixture
def ledger(product: Product) -> MemoryLedger:
    return MemoryLedger([product])


@pytest.fixture
def orders() -> MemoryOrderStore:
    return MemoryOrderStore()


@pytest.fixture
def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def policy() -> Policy:
    return Policy().with_processor_timeout(seconds=1)


@pytest.fixture
def rec(
    processor: FakeProcessor,
    orders: MemoryOrderStore,
    ledger: MemoryLedger,
    policy: Policy,
) -> Reconciler:
    return (
        reconciler()
        .processor(processor)
        .orders(orders)
        .ledger(ledger)
        .policy(policy)
        .build()
    )


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}"


@pytest.fixture
async def session_factory(db_url: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    factory, engine = await create_database(db_url)
    yield factory
    await engine.dispose()
