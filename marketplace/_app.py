"""
Marketplace — process-wide wiring with explicit start/close.

    async with await Marketplace.start(MarketplaceSettings()) as mp:
        redirect = await mp.checkout.create_session(cart)
        ...
        result = await mp.reconciler.run(session_id)

    mp = Marketplace.in_memory([product])   # tests, demos
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from types import TracebackType

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from marketplace._db import create_database
from marketplace._settings import MarketplaceSettings
from marketplace.checkout import CheckoutInitiator, initiator
from marketplace.ledger import Ledger, Product, MemoryLedger, SQLAlchemyLedger
from marketplace.orders import OrderStore, MemoryOrderStore, SQLAlchemyOrderStore
from marketplace.processor import PaymentProcessor, FakeProcessor, StripeProcessor
from marketplace.reconcile import Reconciler, reconciler

logger = structlog.get_logger(__name__)


def make_processor(settings: MarketplaceSettings) -> PaymentProcessor:
    """Processor named by settings."""
    match settings.processor:
        case "stripe":
            if settings.stripe_secret_key is None:
                raise ValueError("stripe_secret_key is required for the stripe processor")
            return StripeProcessor(api_key=settings.stripe_secret_key.get_secret_value())
        case _:
            return FakeProcessor()


@dataclass(slots=True)
class Marketplace:
    """
    Stores, processor and the two operations built over them.

    Note: Owns the engine when created by start(). close() disposes it;
    components keep working only until then.
    """

    settings: MarketplaceSettings
    ledger: Ledger
    orders: OrderStore
    processor: PaymentProcessor
    checkout: CheckoutInitiator
    reconciler: Reconciler
    engine: AsyncEngine | None = None

    @classmethod
    def assemble(
        cls,
        settings: MarketplaceSettings,
        *,
        ledger: Ledger,
        orders: OrderStore,
        processor: PaymentProcessor,
        engine: AsyncEngine | None = None,
    ) -> Marketplace:
        policy = settings.policy()
        return cls(
            settings=settings,
            ledger=ledger,
            orders=orders,
            processor=processor,
            checkout=(
                initiator()
                .processor(processor)
                .client_domain(settings.client_domain)
                .policy(policy)
                .build()
            ),
            reconciler=(
                reconciler()
                .processor(processor)
                .orders(orders)
                .ledger(ledger)
                .policy(policy)
                .build()
            ),
            engine=engine,
        )

    @classmethod
    async def start(
        cls,
        settings: MarketplaceSettings | None = None,
        *,
        processor: PaymentProcessor | None = None,
    ) -> Marketplace:
        """Create engine and schema, wire SQLAlchemy stores."""
        settings = settings if settings is not None else MarketplaceSettings()
        session_factory, engine = await create_database(settings.database_url)

        logger.info(
            "marketplace_started",
            environment=settings.environment,
            processor=settings.processor,
            database=engine.url.render_as_string(hide_password=True),
        )

        return cls.assemble(
            settings,
            ledger=SQLAlchemyLedger(session_factory),
            orders=SQLAlchemyOrderStore(session_factory),
            processor=processor if processor is not None else make_processor(settings),
            engine=engine,
        )

    @classmethod
    def in_memory(
        cls,
        products: Iterable[Product] = (),
        *,
        processor: PaymentProcessor | None = None,
        settings: MarketplaceSettings | None = None,
    ) -> Marketplace:
        """Memory stores, fake processor unless one is given."""
        settings = settings if settings is not None else MarketplaceSettings(environment="test")
        return cls.assemble(
            settings,
            ledger=MemoryLedger(list(products)),
            orders=MemoryOrderStore(),
            processor=processor if processor is not None else FakeProcessor(),
        )

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            logger.info("marketplace_closed")

    async def __aenter__(self) -> Marketplace:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = (
    "Marketplace",
    "make_processor",
)
