"""
Fake processor — in-process sessions for tests and demos.

    processor = FakeProcessor()
    created = (await processor.create_session(request)).unwrap()

    processor.complete(created.session_id, transaction_id="tx_1")
    session = (await processor.get_session(created.session_id)).unwrap()
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace

from kungfu import Result, Ok, Error

from marketplace.processor._types import (
    SessionStatus,
    PaymentSession,
    SessionRequest,
    CreatedSession,
    ProcessorError,
    ProcessorErrorKind,
)


class FakeProcessor:
    """
    Configurable in-memory processor.

    Sessions start OPEN. Tests move them with complete() or expire(),
    or seed() a ready-made session. Every call is recorded in `calls`.
    """

    def __init__(
        self,
        *,
        latency: float = 0.0,
        redirect_base: str = "https://checkout.fake/pay",
    ) -> None:
        self._sessions: dict[str, PaymentSession] = {}
        self._latency = latency
        self._redirect_base = redirect_base
        self._should_succeed = True
        self._failure_kind = ProcessorErrorKind.UNAVAILABLE
        self._failure_reason = "Processor unavailable"
        self.calls: list[tuple[str, str]] = []

    def configure(
        self,
        *,
        should_succeed: bool = True,
        failure_kind: ProcessorErrorKind = ProcessorErrorKind.UNAVAILABLE,
        failure_reason: str = "Processor unavailable",
        latency: float | None = None,
    ) -> None:
        self._should_succeed = should_succeed
        self._failure_kind = failure_kind
        self._failure_reason = failure_reason
        if latency is not None:
            self._latency = latency

    # ─────────────────────────────────────────────────────────────────────────
    # Test controls
    # ─────────────────────────────────────────────────────────────────────────

    def seed(self, session: PaymentSession) -> PaymentSession:
        self._sessions[session.id] = session
        return session

    def complete(self, session_id: str, transaction_id: str | None = None) -> PaymentSession:
        """Mark session paid. Generates a transaction id if none given."""
        session = self._sessions[session_id]
        tx = transaction_id or f"pi_{uuid.uuid4().hex[:16]}"
        updated = replace(session, status=SessionStatus.COMPLETE, transaction_id=tx)
        self._sessions[session_id] = updated
        return updated

    def expire(self, session_id: str) -> PaymentSession:
        updated = replace(self._sessions[session_id], status=SessionStatus.EXPIRED)
        self._sessions[session_id] = updated
        return updated

    def session(self, session_id: str) -> PaymentSession | None:
        return self._sessions.get(session_id)

    def calls_to(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    # ─────────────────────────────────────────────────────────────────────────
    # PaymentProcessor
    # ─────────────────────────────────────────────────────────────────────────

    async def create_session(
        self, request: SessionRequest
    ) -> Result[CreatedSession, ProcessorError]:
        session_id = f"cs_{uuid.uuid4().hex[:16]}"
        self.calls.append(("create_session", session_id))

        if self._latency:
            await asyncio.sleep(self._latency)

        if not self._should_succeed:
            return Error(ProcessorError(self._failure_kind, self._failure_reason))

        redirect_url = f"{self._redirect_base}/{session_id}"
        self._sessions[session_id] = PaymentSession(
            id=session_id,
            status=SessionStatus.OPEN,
            amount_total=request.amount_total,
            currency=request.currency,
            customer_email=request.customer_email,
            metadata=dict(request.metadata),
            redirect_url=redirect_url,
        )
        return Ok(CreatedSession(session_id=session_id, redirect_url=redirect_url))

    async def get_session(self, session_id: str) -> Result[PaymentSession, ProcessorError]:
        self.calls.append(("get_session", session_id))

        if self._latency:
            await asyncio.sleep(self._latency)

        if not self._should_succeed:
            return Error(ProcessorError(self._failure_kind, self._failure_reason))

        session = self._sessions.get(session_id)
        if session is None:
            return Error(
                ProcessorError(
                    ProcessorErrorKind.NOT_FOUND, f"No such session: {session_id}"
                )
            )
        return Ok(session)


__all__ = ("FakeProcessor",)
