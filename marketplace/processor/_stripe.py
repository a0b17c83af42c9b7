"""
Stripe processor — Checkout Sessions through the official `stripe` SDK.

    processor = StripeProcessor(api_key=settings.stripe_secret_key.get_secret_value())

Note: The SDK is synchronous. Calls run in a worker thread so the event
loop keeps serving other reconciliations. The Stripe payment_intent id
is the transaction id.
"""

from __future__ import annotations

import asyncio
from typing import Any

import stripe
import structlog
from kungfu import Result, Ok, Error

from marketplace.processor._types import (
    SessionStatus,
    PaymentSession,
    SessionRequest,
    CreatedSession,
    ProcessorError,
    ProcessorErrorKind,
)

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Mapping
# ═══════════════════════════════════════════════════════════════════════════════


def _to_error(e: stripe.StripeError) -> ProcessorError:
    match e:
        case stripe.InvalidRequestError() if e.code == "resource_missing":
            kind = ProcessorErrorKind.NOT_FOUND
        case stripe.APIConnectionError():
            kind = ProcessorErrorKind.UNAVAILABLE
        case _:
            kind = ProcessorErrorKind.REJECTED
    return ProcessorError(kind, str(e) or type(e).__name__, cause=e)


def _transaction_id(raw: Any) -> str | None:
    # payment_intent is an id string unless expanded.
    if raw is None or isinstance(raw, str):
        return raw
    return getattr(raw, "id", None)


_STATUSES = {s.value: s for s in SessionStatus}


def _to_session(raw: Any) -> Result[PaymentSession, ProcessorError]:
    status = getattr(raw, "status", None) or SessionStatus.OPEN.value
    if status not in _STATUSES:
        return Error(
            ProcessorError(
                ProcessorErrorKind.REJECTED,
                f"Session {raw.id} has unknown status {status!r}",
            )
        )

    return Ok(
        PaymentSession(
            id=raw.id,
            status=_STATUSES[status],
            amount_total=raw.amount_total or 0,
            currency=raw.currency or "",
            customer_email=getattr(raw, "customer_email", None),
            transaction_id=_transaction_id(getattr(raw, "payment_intent", None)),
            metadata={k: str(v) for k, v in dict(raw.metadata or {}).items()},
            redirect_url=getattr(raw, "url", None),
        )
    )


def _to_params(request: SessionRequest) -> dict[str, Any]:
    product_data: dict[str, Any] = {"name": request.name}
    if request.description:
        product_data["description"] = request.description
    if request.image:
        product_data["images"] = [request.image]

    return {
        "mode": "payment",
        "line_items": [
            {
                "price_data": {
                    "currency": request.currency,
                    "unit_amount": request.unit_amount,
                    "product_data": product_data,
                },
                "quantity": request.quantity,
            }
        ],
        "customer_email": request.customer_email,
        "metadata": dict(request.metadata),
        "success_url": request.success_url,
        "cancel_url": request.cancel_url,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# Stripe Processor
# ═══════════════════════════════════════════════════════════════════════════════


class StripeProcessor:
    """PaymentProcessor over Stripe Checkout."""

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    async def create_session(
        self, request: SessionRequest
    ) -> Result[CreatedSession, ProcessorError]:
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self._api_key,
                **_to_params(request),
            )
        except stripe.StripeError as e:
            logger.warning("stripe_create_failed", error=str(e), error_type=type(e).__name__)
            return Error(_to_error(e))

        return Ok(CreatedSession(session_id=session.id, redirect_url=session.url or ""))

    async def get_session(self, session_id: str) -> Result[PaymentSession, ProcessorError]:
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve,
                session_id,
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            logger.warning(
                "stripe_retrieve_failed",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Error(_to_error(e))

        return _to_session(session)


__all__ = ("StripeProcessor",)
