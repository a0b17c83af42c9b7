"""
SQLAlchemy integration — append-only order store backed by an `orders` table.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
    orders = SQLAlchemyOrderStore(session_factory)

    match await orders.insert_unique(draft):
        case Ok(order): ...                      # this call created it
        case Error(OrderConflict(existing)): ... # already there
        case Error(StoreError() as err): ...

Note: insert_unique is INSERT ... ON CONFLICT (transaction_id) DO NOTHING.
The unique index is the gate; rowcount tells us who won.
Supported dialects: sqlite, postgresql.
"""

from datetime import datetime, UTC
from typing import Any, cast

from sqlalchemy import Integer, String, Text, DateTime, select, or_
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from kungfu import Result, Ok, Error

from marketplace._db import Base, insert_ignoring_duplicates
from marketplace._types import to_minor_units, from_minor_units
from marketplace.ledger._types import Seller
from marketplace.orders._types import (
    Order,
    OrderDraft,
    OrderStatus,
    OrderConflict,
    StoreError,
)
from marketplace.orders._store import new_order_id, utcnow


# ═══════════════════════════════════════════════════════════════════════════════
# Orders Table
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTable(Base):
    """Orders table. transaction_id is unique: one order per payment."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    transaction_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    buyer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Product snapshot
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    seller_id: Mapped[str] = mapped_column(String(64), nullable=False)
    seller_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    seller_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _to_order(row: OrderTable) -> Order:
    # SQLite drops tzinfo on the way back.
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)

    return Order(
        id=row.id,
        product_id=row.product_id,
        transaction_id=row.transaction_id,
        buyer_email=row.buyer_email,
        seller=Seller(id=row.seller_id, email=row.seller_email, name=row.seller_name),
        name=row.name,
        category=row.category,
        price=from_minor_units(row.price_minor),
        quantity=row.quantity,
        status=OrderStatus(row.status),
        created_at=created_at,
        image=row.image,
    )


def _insert_values(draft: OrderDraft) -> dict[str, Any]:
    return {
        "id": new_order_id(),
        "transaction_id": draft.transaction_id,
        "product_id": draft.product_id,
        "buyer_email": draft.buyer_email,
        "name": draft.name,
        "category": draft.category,
        "image": draft.image,
        "price_minor": to_minor_units(draft.price),
        "quantity": draft.quantity,
        "seller_id": draft.seller.id,
        "seller_email": draft.seller.email,
        "seller_name": draft.seller.name,
        "status": draft.status.value,
        "created_at": utcnow(),
    }


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy Order Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyOrderStore:
    """Order store over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, order_id: str) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order_id)
                return Ok(_to_order(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to get: {e}", e))

    async def find_by_transaction_id(
        self, transaction_id: str
    ) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = select(OrderTable).where(OrderTable.transaction_id == transaction_id)
                row = (await session.execute(stmt)).scalar_one_or_none()
                return Ok(_to_order(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to find by transaction: {e}", e))

    async def insert_unique(
        self, draft: OrderDraft
    ) -> Result[Order, OrderConflict | StoreError]:
        try:
            async with self._session_factory() as session:
                values = _insert_values(draft)
                stmt = insert_ignoring_duplicates(
                    session, OrderTable, values, key="transaction_id"
                )
                cursor = cast(CursorResult[Any], await session.execute(stmt))
                await session.commit()

                if cursor.rowcount > 0:
                    return Ok(
                        Order.from_draft(draft, values["id"], values["created_at"])
                    )

                existing_stmt = select(OrderTable).where(
                    OrderTable.transaction_id == draft.transaction_id
                )
                row = (await session.execute(existing_stmt)).scalar_one_or_none()
                if row is None:
                    return Error(
                        StoreError(
                            f"Insert ignored but no order for {draft.transaction_id}"
                        )
                    )
                return Error(OrderConflict(_to_order(row)))

        except Exception as e:
            return Error(StoreError(f"Failed to insert: {e}", e))

    async def find_by_buyer(self, buyer_email: str) -> Result[list[Order], StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(OrderTable)
                    .where(OrderTable.buyer_email == buyer_email)
                    .order_by(OrderTable.created_at)
                )
                rows = (await session.execute(stmt)).scalars().all()
                return Ok([_to_order(r) for r in rows])

        except Exception as e:
            return Error(StoreError(f"Failed to find by buyer: {e}", e))

    async def find_by_seller(self, email_or_id: str) -> Result[list[Order], StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(OrderTable)
                    .where(
                        or_(
                            OrderTable.seller_email == email_or_id,
                            OrderTable.seller_id == email_or_id,
                        )
                    )
                    .order_by(OrderTable.created_at)
                )
                rows = (await session.execute(stmt)).scalars().all()
                return Ok([_to_order(r) for r in rows])

        except Exception as e:
            return Error(StoreError(f"Failed to find by seller: {e}", e))


__all__ = (
    "OrderTable",
    "SQLAlchemyOrderStore",
)
