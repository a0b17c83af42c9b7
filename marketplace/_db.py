"""
Database layer — declarative base and engine setup shared by SQLAlchemy stores.

Note: Ledger and order tables register on the same Base, so one
create_all() builds the whole schema.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
    *,
    echo: bool = False,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create schema and return (session_factory, engine)."""
    # Importing the table modules registers them on Base.metadata.
    from marketplace.ledger import _sqlalchemy as _ledger_tables  # noqa: F401
    from marketplace.orders import _sqlalchemy as _order_tables  # noqa: F401

    engine = create_async_engine(url, echo=echo)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


def dialect_of(session: AsyncSession) -> str:
    """Dialect name of the engine behind an async session."""
    return session.get_bind().dialect.name


def insert_ignoring_duplicates(
    session: AsyncSession,
    table: type[Base],
    values: dict[str, Any],
    *,
    key: str,
) -> Any:
    """
    INSERT ... ON CONFLICT (key) DO NOTHING for the session's dialect.

    rowcount of the executed statement is 1 when this call inserted, 0 when
    a row with the same key already existed.
    Supported dialects: sqlite, postgresql.
    """
    match dialect_of(session):
        case "sqlite":
            stmt = sqlite_insert(table).values(**values)
        case "postgresql":
            stmt = pg_insert(table).values(**values)
        case other:
            raise NotImplementedError(f"insert-if-absent is not supported on {other}")
    return stmt.on_conflict_do_nothing(index_elements=[key])


__all__ = (
    "Base",
    "create_database",
    "dialect_of",
    "insert_ignoring_duplicates",
)
