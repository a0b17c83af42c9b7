"""
SQLAlchemy integration — product ledger backed by `products` and `stock_takes` tables.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
    ledger = SQLAlchemyLedger(session_factory)

    await ledger.add(product)
    remaining = await ledger.decrement_quantity(product.id)

Note: The decrement is one conditional UPDATE. The database serializes
concurrent writers on the row, and the `quantity >= :by` guard keeps the
stored quantity from ever going negative.

take_stock inserts its key into `stock_takes` and runs the same UPDATE in
one transaction. A repeated key hits the primary key and decrements nothing;
a refused decrement rolls the key back out.
"""

from datetime import datetime, UTC
from typing import Any, cast

from sqlalchemy import Integer, String, Text, DateTime, CheckConstraint, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from kungfu import Result, Ok, Error

from marketplace._db import Base, insert_ignoring_duplicates
from marketplace._types import to_minor_units, from_minor_units
from marketplace.ledger._types import Product, Seller, LedgerError, LedgerErrorKind
from marketplace.ledger._store import validate_new_product, validate_decrement


# ═══════════════════════════════════════════════════════════════════════════════
# Products Table
# ═══════════════════════════════════════════════════════════════════════════════


class ProductTable(Base):
    """Products table. Price is stored in minor units."""

    __tablename__ = "products"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_products_quantity"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    price_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Seller reference
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False)
    seller_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    seller_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class StockTakeTable(Base):
    """One row per key that has taken stock. Written with the decrement."""

    __tablename__ = "stock_takes"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    taken_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _to_product(row: ProductTable) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        category=row.category,
        price=from_minor_units(row.price_minor),
        quantity=row.quantity,
        seller=Seller(id=row.seller_id, email=row.seller_email, name=row.seller_name),
        image=row.image,
        description=row.description,
    )


def _to_row(product: Product) -> ProductTable:
    return ProductTable(
        id=product.id,
        name=product.name,
        category=product.category,
        price_minor=to_minor_units(product.price),
        quantity=product.quantity,
        description=product.description,
        image=product.image,
        seller_id=product.seller.id,
        seller_email=product.seller.email,
        seller_name=product.seller.name,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy Ledger
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyLedger:
    """Product ledger over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, product_id: str) -> Result[Product, LedgerError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ProductTable, product_id)
                if row is None:
                    return Error(LedgerError.not_found(product_id))
                return Ok(_to_product(row))

        except Exception as e:
            return Error(_store_error("get", product_id, e))

    async def decrement_quantity(
        self,
        product_id: str,
        by: int = 1,
    ) -> Result[int, LedgerError]:
        if invalid := validate_decrement(product_id, by):
            return Error(invalid)

        try:
            async with self._session_factory() as session:
                stmt = (
                    update(ProductTable)
                    .where(ProductTable.id == product_id, ProductTable.quantity >= by)
                    .values(quantity=ProductTable.quantity - by)
                )
                cursor = cast(CursorResult[Any], await session.execute(stmt))

                # Still inside the write transaction: this read sees our update.
                row = await session.get(ProductTable, product_id, populate_existing=True)
                remaining = row.quantity if row is not None else None

                if cursor.rowcount == 0:
                    await session.rollback()
                    return Error(_refused(product_id, remaining, by))

                await session.commit()
                return Ok(remaining or 0)

        except Exception as e:
            return Error(_store_error("decrement", product_id, e))

    async def take_stock(
        self,
        product_id: str,
        *,
        key: str,
        by: int = 1,
    ) -> Result[bool, LedgerError]:
        if invalid := validate_decrement(product_id, by):
            return Error(invalid)

        try:
            async with self._session_factory() as session:
                claim = insert_ignoring_duplicates(
                    session,
                    StockTakeTable,
                    {
                        "key": key,
                        "product_id": product_id,
                        "quantity": by,
                        "taken_at": datetime.now(UTC),
                    },
                    key="key",
                )
                claimed = cast(CursorResult[Any], await session.execute(claim))
                if claimed.rowcount == 0:
                    await session.rollback()
                    return Ok(False)

                stmt = (
                    update(ProductTable)
                    .where(ProductTable.id == product_id, ProductTable.quantity >= by)
                    .values(quantity=ProductTable.quantity - by)
                )
                cursor = cast(CursorResult[Any], await session.execute(stmt))

                if cursor.rowcount == 0:
                    row = await session.get(ProductTable, product_id)
                    available = row.quantity if row is not None else None
                    # Drops the claim with the refused decrement.
                    await session.rollback()
                    return Error(_refused(product_id, available, by))

                await session.commit()
                return Ok(True)

        except Exception as e:
            return Error(_store_error("take stock", product_id, e))

    async def add(self, product: Product) -> Result[Product, LedgerError]:
        if invalid := validate_new_product(product):
            return Error(invalid)

        try:
            async with self._session_factory() as session:
                session.add(_to_row(product))
                await session.commit()
                return Ok(product)

        except IntegrityError:
            return Error(
                LedgerError(
                    LedgerErrorKind.INVALID,
                    f"Product already exists: {product.id}",
                    product.id,
                )
            )
        except Exception as e:
            return Error(_store_error("add", product.id, e))

    async def remove(self, product_id: str) -> Result[bool, LedgerError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ProductTable, product_id)
                if row is None:
                    return Ok(False)

                await session.delete(row)
                await session.commit()
                return Ok(True)

        except Exception as e:
            return Error(_store_error("remove", product_id, e))

    async def list_all(self) -> Result[list[Product], LedgerError]:
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(select(ProductTable))).scalars().all()
                return Ok([_to_product(r) for r in rows])

        except Exception as e:
            return Error(_store_error("list", None, e))

    async def list_by_seller(self, seller_email: str) -> Result[list[Product], LedgerError]:
        try:
            async with self._session_factory() as session:
                stmt = select(ProductTable).where(ProductTable.seller_email == seller_email)
                rows = (await session.execute(stmt)).scalars().all()
                return Ok([_to_product(r) for r in rows])

        except Exception as e:
            return Error(_store_error("list by seller", None, e))


def _refused(product_id: str, available: int | None, by: int) -> LedgerError:
    if available is None:
        return LedgerError.not_found(product_id)
    return LedgerError.insufficient_stock(product_id, available, by)


def _store_error(op: str, product_id: str | None, e: Exception) -> LedgerError:
    return LedgerError(
        LedgerErrorKind.STORE_ERROR, f"Failed to {op}: {e}", product_id, cause=e
    )


__all__ = (
    "ProductTable",
    "StockTakeTable",
    "SQLAlchemyLedger",
)
