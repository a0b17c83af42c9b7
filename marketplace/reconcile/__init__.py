"""
Reconcile — turn a paid processor session into exactly one order.

    from marketplace import reconcile as R

    rec = (
        R.reconciler()
        .processor(processor)
        .orders(orders)
        .ledger(ledger)
        .build()
    )

    match await rec.run(session_id):
        case Ok(R.Reconciliation(order_id=oid, created=created)): ...
        case Error(R.ReconcileError(kind=R.ReconcileErrorKind.PAYMENT_INCOMPLETE)): ...

Repeat calls for the same session are no-ops that return the same order.
"""

from marketplace.reconcile._types import (
    Reconciliation,
    ReconcileErrorKind,
    ReconcileError,
)
from marketplace.reconcile._builder import (
    Reconciler,
    ReconcilerBuilder,
    reconciler,
)

__all__ = (
    # Types
    "Reconciliation",
    "ReconcileErrorKind",
    "ReconcileError",
    # Builder
    "Reconciler",
    "ReconcilerBuilder",
    "reconciler",
)
