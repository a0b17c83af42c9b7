"""
Reconciler builder — fluent API over graph.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from marketplace._policy import Policy
from marketplace._types import Lazy
from marketplace.ledger import Ledger
from marketplace.orders import OrderStore
from marketplace.processor import PaymentProcessor
from marketplace.reconcile._graph import ReconcileSpec, run_reconcile
from marketplace.reconcile._types import (
    Reconciliation,
    ReconcileError,
    ReconcileErrorKind,
)

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Reconciler — compiled
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Reconciler:
    """
    Compiled reconciler.

    Note: Thin wrapper — creates ReconcileSpec and runs graph.
    Safe to call any number of times for the same session.
    """

    processor: PaymentProcessor
    orders: OrderStore
    ledger: Ledger
    policy: Policy

    def run(self, session_id: str) -> Lazy[Reconciliation, ReconcileError]:
        """Reconcile a processor session into exactly one order."""
        spec = ReconcileSpec(
            session_id=session_id,
            processor=self.processor,
            orders=self.orders,
            ledger=self.ledger,
            policy=self.policy,
        )

        async def execute() -> Result[Reconciliation, ReconcileError]:
            result = await run_reconcile(spec)
            _log(session_id, result)
            return result

        return LazyCoroResult(execute)


def _log(session_id: str, result: Result[Reconciliation, ReconcileError]) -> None:
    log = logger.bind(session_id=session_id)

    match result:
        case Ok(Reconciliation(created=True) as rec):
            log.info("order_reconciled", transaction_id=rec.transaction_id, order_id=rec.order_id)
        case Ok(rec):
            log.info("reconcile_duplicate", transaction_id=rec.transaction_id, order_id=rec.order_id)
        case Error(ReconcileError(kind=ReconcileErrorKind.PAYMENT_INCOMPLETE) as err):
            log.info("payment_incomplete", reason=err.message)
        case Error(err) if err.order_id is not None:
            # Payment taken, order written, stock not. The next run retries the take.
            log.error(
                "ledger_decrement_rejected",
                kind=err.kind.name,
                transaction_id=err.transaction_id,
                order_id=err.order_id,
                reason=err.message,
            )
        case Error(err):
            log.warning("reconcile_failed", kind=err.kind.name, reason=err.message)


# ═══════════════════════════════════════════════════════════════════════════════
# Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class ReconcilerBuilder:
    """
    Fluent reconciler builder.
    """

    _processor: PaymentProcessor | None
    _orders: OrderStore | None
    _ledger: Ledger | None
    _policy: Policy

    def processor(self, p: PaymentProcessor) -> ReconcilerBuilder:
        """Set payment processor."""
        return replace(self, _processor=p)

    def orders(self, s: OrderStore) -> ReconcilerBuilder:
        """Set order store."""
        return replace(self, _orders=s)

    def ledger(self, s: Ledger) -> ReconcilerBuilder:
        """Set product ledger."""
        return replace(self, _ledger=s)

    def policy(self, p: Policy) -> ReconcilerBuilder:
        """Set timeout policy."""
        return replace(self, _policy=p)

    def build(self) -> Reconciler:
        """Build executable."""
        if self._processor is None:
            raise ValueError("processor() is required")
        if self._orders is None:
            raise ValueError("orders() is required")
        if self._ledger is None:
            raise ValueError("ledger() is required")

        return Reconciler(
            processor=self._processor,
            orders=self._orders,
            ledger=self._ledger,
            policy=self._policy,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# reconciler() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def reconciler() -> ReconcilerBuilder:
    """
    Create reconciler builder.

    Example:
        rec = (
            R.reconciler()
            .processor(processor)
            .orders(O.MemoryOrderStore())
            .ledger(L.MemoryLedger(products))
            .policy(Policy().with_processor_timeout(seconds=5))
            .build()
        )

        result = await rec.run(session_id)
    """
    return ReconcilerBuilder(
        _processor=None,
        _orders=None,
        _ledger=None,
        _policy=Policy(),
    )


__all__ = (
    "Reconciler",
    "ReconcilerBuilder",
    "reconciler",
)
