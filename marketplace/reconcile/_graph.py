"""
Reconcile graph — ALL logic as nodnod nodes.

Architecture:
    ReconcileSpec (injected)
         │
         ▼
    SpecNode
         │
         ▼
    FetchSessionNode ──────────────────────┐
         │                                 │
         ├── MalformedSessionNode          FetchFailedNode
         ▼
    ValidSessionNode
         │
         ▼
    LookupOrderNode
         │
         ├── StoreFailedNode ──────┐
         ├── ExistingOrderNode ────┤
         ├── IncompletePaymentNode ┼── ReconcileOutcome (@polymorphic)
         └── CompletedPaymentNode ─┘             │
                                                 ▼
                                          FinalResultNode

Cases are tried in order; the first one whose nodes validate wins.
Only `materialize` inserts orders. Both it and `already_reconciled` settle
stock through the ledger's take_stock, keyed by transaction id, so a take
that failed on an earlier call is retried and a completed one is a no-op.

Note: No 'from __future__ import annotations' here. nodnod reads
type hints at runtime for dependency resolution.
"""

from dataclasses import dataclass
from typing import Any, cast

import combinators
from nodnod import EventLoopAgent, Node, NodeError, Scope, Value, case, polymorphic
from nodnod import scalar_node as node

from kungfu import LazyCoroResult, Result, Ok, Error

from marketplace._policy import Policy
from marketplace._types import from_minor_units
from marketplace.ledger import Ledger, LedgerError, LedgerErrorKind
from marketplace.orders import Order, OrderDraft, OrderStore, OrderConflict, StoreError
from marketplace.processor import (
    METADATA_PRODUCT_ID,
    METADATA_BUYER_EMAIL,
    PaymentProcessor,
    PaymentSession,
    ProcessorError,
    ProcessorErrorKind,
)
from marketplace.reconcile._types import (
    Reconciliation,
    ReconcileError,
    ReconcileErrorKind,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Input — ReconcileSpec (injected)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ReconcileSpec:
    """Everything one reconciliation needs."""

    session_id: str
    processor: PaymentProcessor
    orders: OrderStore
    ledger: Ledger
    policy: Policy

    def error(
        self,
        kind: ReconcileErrorKind,
        message: str,
        *,
        transaction_id: str | None = None,
        order_id: str | None = None,
        cause: object | None = None,
    ) -> ReconcileError:
        return ReconcileError(
            kind,
            message,
            session_id=self.session_id,
            transaction_id=transaction_id,
            order_id=order_id,
            cause=cause,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Entry Node
# ═══════════════════════════════════════════════════════════════════════════════


@node
class SpecNode:
    """Wraps ReconcileSpec for graph."""

    def __init__(self, spec: ReconcileSpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, spec: ReconcileSpec) -> "SpecNode":
        return cls(spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Fetch Session
# ═══════════════════════════════════════════════════════════════════════════════


def _fetch_error(
    spec: ReconcileSpec, err: ProcessorError | combinators.TimeoutError
) -> ReconcileError:
    match err:
        case combinators.TimeoutError(seconds=seconds):
            return spec.error(
                ReconcileErrorKind.UPSTREAM_PAYMENT,
                f"Processor timed out after {seconds}s",
                cause=err,
            )
        case ProcessorError(kind=ProcessorErrorKind.NOT_FOUND):
            return spec.error(
                ReconcileErrorKind.SESSION_NOT_FOUND,
                f"Session not found: {spec.session_id}",
                cause=err,
            )
        case _:
            return spec.error(ReconcileErrorKind.UPSTREAM_PAYMENT, err.message, cause=err)


@node
class FetchSessionNode:
    """Fetches session from the processor, capped by the policy timeout."""

    def __init__(
        self,
        session: PaymentSession | None,
        spec: ReconcileSpec,
        error: ReconcileError | None = None,
    ) -> None:
        self.session = session
        self.spec = spec
        self.error = error

    @classmethod
    async def __compose__(cls, spec_node: SpecNode) -> "FetchSessionNode":
        spec = spec_node.spec
        call = LazyCoroResult(lambda: spec.processor.get_session(spec.session_id))
        result = await combinators.timeout(
            call, seconds=spec.policy.processor_timeout_seconds
        )

        match result:
            case Ok(session):
                return cls(session, spec)
            case Error(err):
                return cls(None, spec, error=_fetch_error(spec, err))


@node
class FetchFailedNode:
    """Validates: processor call failed."""

    def __init__(self, error: ReconcileError) -> None:
        self.error = error

    @classmethod
    def __compose__(cls, fetch: FetchSessionNode) -> "FetchFailedNode":
        if fetch.error is None:
            raise NodeError("Fetch succeeded")
        return cls(fetch.error)


# ═══════════════════════════════════════════════════════════════════════════════
# Session Shape — metadata must name product and buyer
# ═══════════════════════════════════════════════════════════════════════════════


def malformed_reason(session: PaymentSession) -> str | None:
    """Why a session can't be reconciled, or None if it can."""
    missing = [
        key
        for key in (METADATA_PRODUCT_ID, METADATA_BUYER_EMAIL)
        if not (session.metadata.get(key) or "").strip()
    ]
    if missing:
        return f"Session metadata missing {', '.join(missing)}"
    if session.is_complete and not session.transaction_id:
        return "Completed session has no transaction id"
    return None


@node
class MalformedSessionNode:
    """Validates: session fetched but unusable."""

    def __init__(self, error: ReconcileError) -> None:
        self.error = error

    @classmethod
    def __compose__(cls, fetch: FetchSessionNode) -> "MalformedSessionNode":
        if fetch.session is None:
            raise NodeError("No session")
        reason = malformed_reason(fetch.session)
        if reason is None:
            raise NodeError("Session well-formed")
        return cls(fetch.spec.error(ReconcileErrorKind.MALFORMED_SESSION, reason))


@node
class ValidSessionNode:
    """Validates: session fetched and carries product + buyer."""

    def __init__(
        self,
        session: PaymentSession,
        product_id: str,
        buyer_email: str,
        spec: ReconcileSpec,
    ) -> None:
        self.session = session
        self.product_id = product_id
        self.buyer_email = buyer_email
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchSessionNode) -> "ValidSessionNode":
        session = fetch.session
        if session is None:
            raise NodeError("No session")
        if malformed_reason(session) is not None:
            raise NodeError("Malformed session")
        return cls(
            session,
            session.metadata[METADATA_PRODUCT_ID].strip(),
            session.metadata[METADATA_BUYER_EMAIL].strip(),
            fetch.spec,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Lookup Order — idempotency check
# ═══════════════════════════════════════════════════════════════════════════════


@node
class LookupOrderNode:
    """
    Looks up an existing order for the session's transaction.

    Note: Unpaid sessions have no transaction id, so no order to find.
    """

    def __init__(
        self,
        valid: ValidSessionNode,
        existing: Order | None,
        store_error: StoreError | None = None,
    ) -> None:
        self.valid = valid
        self.existing = existing
        self.store_error = store_error

    @classmethod
    async def __compose__(cls, valid: ValidSessionNode) -> "LookupOrderNode":
        tx = valid.session.transaction_id
        if tx is None:
            return cls(valid, None)

        result = await valid.spec.orders.find_by_transaction_id(tx)

        match result:
            case Ok(existing):
                return cls(valid, existing)
            case Error(err):
                return cls(valid, None, store_error=err)


@node
class StoreFailedNode:
    """Validates: order lookup failed."""

    def __init__(self, error: StoreError, valid: ValidSessionNode) -> None:
        self.error = error
        self.valid = valid

    @classmethod
    def __compose__(cls, lookup: LookupOrderNode) -> "StoreFailedNode":
        if lookup.store_error is None:
            raise NodeError("No store error")
        return cls(lookup.store_error, lookup.valid)


@node
class ExistingOrderNode:
    """Validates: an order already exists for this transaction."""

    def __init__(self, order: Order, spec: ReconcileSpec) -> None:
        self.order = order
        self.spec = spec

    @classmethod
    def __compose__(cls, lookup: LookupOrderNode) -> "ExistingOrderNode":
        if lookup.existing is None:
            raise NodeError("No existing order")
        return cls(lookup.existing, lookup.valid.spec)


@node
class IncompletePaymentNode:
    """Validates: no order, session not paid."""

    def __init__(self, valid: ValidSessionNode) -> None:
        self.valid = valid

    @classmethod
    def __compose__(cls, lookup: LookupOrderNode) -> "IncompletePaymentNode":
        if lookup.store_error is not None or lookup.existing is not None:
            raise NodeError("Lookup not empty")
        if lookup.valid.session.is_complete:
            raise NodeError("Payment complete")
        return cls(lookup.valid)


@node
class CompletedPaymentNode:
    """Validates: no order, session paid. The only path that writes."""

    def __init__(self, valid: ValidSessionNode, transaction_id: str) -> None:
        self.valid = valid
        self.transaction_id = transaction_id

    @classmethod
    def __compose__(cls, lookup: LookupOrderNode) -> "CompletedPaymentNode":
        if lookup.store_error is not None or lookup.existing is not None:
            raise NodeError("Lookup not empty")
        session = lookup.valid.session
        if not session.is_complete or session.transaction_id is None:
            raise NodeError("Payment not complete")
        return cls(lookup.valid, session.transaction_id)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OutcomeOk:
    """Order exists for the transaction (created now or earlier)."""

    transaction_id: str
    order_id: str
    created: bool


@dataclass(frozen=True)
class OutcomeError:
    """Reconciliation failed."""

    error: ReconcileError


type Outcome = OutcomeOk | OutcomeError


def _stock_error(spec: ReconcileSpec, order: Order, err: LedgerError) -> OutcomeError:
    kind = {
        LedgerErrorKind.INSUFFICIENT_STOCK: ReconcileErrorKind.INSUFFICIENT_STOCK,
        LedgerErrorKind.NOT_FOUND: ReconcileErrorKind.PRODUCT_NOT_FOUND,
    }.get(err.kind, ReconcileErrorKind.STORE_ERROR)
    return OutcomeError(
        spec.error(
            kind,
            f"Stock not taken for order {order.id}: {err.message}",
            transaction_id=order.transaction_id,
            order_id=order.id,
            cause=err,
        )
    )


async def _settle_stock(spec: ReconcileSpec, order: Order, *, created: bool) -> Outcome:
    """Take the order's stock unless its transaction already did."""
    result = await spec.ledger.take_stock(
        order.product_id, key=order.transaction_id, by=order.quantity
    )
    match result:
        case Error(err):
            return _stock_error(spec, order, err)
        case Ok(_):
            return OutcomeOk(
                transaction_id=order.transaction_id,
                order_id=order.id,
                created=created,
            )


# ═══════════════════════════════════════════════════════════════════════════════
# Polymorphic Outcome — Each case uses validated state nodes
# ═══════════════════════════════════════════════════════════════════════════════


@polymorphic[Outcome]
class ReconcileOutcome:
    """
    Polymorphic router — each @case depends on a validated state node.

    Note: Checks live in the state nodes, cases only act.
    """

    @case
    def fetch_failed(cls, node: FetchFailedNode) -> Outcome:
        """UPSTREAM_PAYMENT / SESSION_NOT_FOUND."""
        return OutcomeError(node.error)

    @case
    def malformed(cls, node: MalformedSessionNode) -> Outcome:
        """MALFORMED_SESSION — metadata missing."""
        return OutcomeError(node.error)

    @case
    def lookup_failed(cls, node: StoreFailedNode) -> Outcome:
        """STORE_ERROR — order lookup failed."""
        spec = node.valid.spec
        return OutcomeError(
            spec.error(
                ReconcileErrorKind.STORE_ERROR,
                node.error.message,
                transaction_id=node.valid.session.transaction_id,
                cause=node.error.cause,
            )
        )

    @case
    async def already_reconciled(cls, node: ExistingOrderNode) -> Outcome:
        """Order exists. Same success shape once its stock is settled."""
        return await _settle_stock(node.spec, node.order, created=False)

    @case
    def incomplete(cls, node: IncompletePaymentNode) -> Outcome:
        """PAYMENT_INCOMPLETE — nothing written."""
        session = node.valid.session
        return OutcomeError(
            node.valid.spec.error(
                ReconcileErrorKind.PAYMENT_INCOMPLETE,
                f"Session {session.id} is {session.status.value}",
            )
        )

    @case
    async def materialize(cls, node: CompletedPaymentNode) -> Outcome:
        """Insert order under the uniqueness gate, then take stock."""
        valid = node.valid
        spec = valid.spec
        tx = node.transaction_id

        # Product
        product_result = await spec.ledger.get(valid.product_id)
        match product_result:
            case Error(LedgerError(kind=LedgerErrorKind.NOT_FOUND)):
                return OutcomeError(
                    spec.error(
                        ReconcileErrorKind.PRODUCT_NOT_FOUND,
                        f"Product not found: {valid.product_id}",
                        transaction_id=tx,
                    )
                )
            case Error(err):
                return OutcomeError(
                    spec.error(
                        ReconcileErrorKind.STORE_ERROR,
                        err.message,
                        transaction_id=tx,
                        cause=err,
                    )
                )
            case Ok(product):
                pass

        draft = OrderDraft(
            product_id=product.id,
            transaction_id=tx,
            buyer_email=valid.buyer_email,
            seller=product.seller,
            name=product.name,
            category=product.category,
            price=from_minor_units(valid.session.amount_total),
            quantity=1,
            image=product.image,
        )

        # Uniqueness gate
        insert_result = await spec.orders.insert_unique(draft)
        match insert_result:
            case Error(OrderConflict(existing)):
                return await _settle_stock(spec, existing, created=False)
            case Error(StoreError() as err):
                return OutcomeError(
                    spec.error(
                        ReconcileErrorKind.STORE_ERROR,
                        err.message,
                        transaction_id=tx,
                        cause=err.cause,
                    )
                )
            case Ok(order):
                pass

        return await _settle_stock(spec, order, created=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Final Node
# ═══════════════════════════════════════════════════════════════════════════════


@node
class FinalResultNode:
    """Converts Outcome to typed Result."""

    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome

    @classmethod
    def __compose__(cls, outcome: ReconcileOutcome) -> "FinalResultNode":
        return cls(outcome.value)

    def to_result(self) -> Result[Reconciliation, ReconcileError]:
        match self.outcome:
            case OutcomeOk(transaction_id=tx, order_id=oid, created=created):
                return Ok(Reconciliation(transaction_id=tx, order_id=oid, created=created))
            case OutcomeError(error=err):
                return Error(err)


# ═══════════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════════


async def run_reconcile(spec: ReconcileSpec) -> Result[Reconciliation, ReconcileError]:
    """Reconcile one session via graph."""
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], FinalResultNode)})

    async with Scope(detail="reconcile") as scope:
        scope.push(Value(ReconcileSpec, spec))
        await agent.run(scope, {})
        final: FinalResultNode = scope[FinalResultNode].value

    return final.to_result()


__all__ = (
    "ReconcileSpec",
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    "SpecNode",
    "FetchSessionNode",
    "FetchFailedNode",
    "MalformedSessionNode",
    "ValidSessionNode",
    "LookupOrderNode",
    "StoreFailedNode",
    "ExistingOrderNode",
    "IncompletePaymentNode",
    "CompletedPaymentNode",
    "ReconcileOutcome",
    "FinalResultNode",
    "malformed_reason",
    "run_reconcile",
)
