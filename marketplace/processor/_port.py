"""
Payment processor protocol.
"""

from __future__ import annotations

from typing import Protocol

from kungfu import Result

from marketplace.processor._types import (
    PaymentSession,
    SessionRequest,
    CreatedSession,
    ProcessorError,
)


class PaymentProcessor(Protocol):
    """
    External payment processor.

    Two calls only: open a checkout session, read one back.
    """

    async def create_session(
        self, request: SessionRequest
    ) -> Result[CreatedSession, ProcessorError]: ...

    async def get_session(self, session_id: str) -> Result[PaymentSession, ProcessorError]: ...


__all__ = ("PaymentProcessor",)
