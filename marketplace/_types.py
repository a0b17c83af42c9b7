"""
Core types for marketplace.

Re-exports from kungfu + money helpers shared by checkout and reconcile.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Money — major units (Decimal) ↔ minor units (int)
# ═══════════════════════════════════════════════════════════════════════════════

MINOR_UNITS = 100


def to_minor_units(amount: Decimal | float | int | str) -> int:
    """
    Convert a major-unit amount to minor units (cents).

    Note: Goes through str() so 19.99 becomes exactly 1999, not 1998.
    """
    value = Decimal(str(amount)) * MINOR_UNITS
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    """Convert minor units back to a two-place Decimal."""
    return (Decimal(amount) / MINOR_UNITS).quantize(Decimal("0.01"))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Type aliases
    "Lazy",
    # Money
    "MINOR_UNITS",
    "to_minor_units",
    "from_minor_units",
)
