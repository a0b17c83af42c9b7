"""
Processor — the payment processor seen through two calls.

    from marketplace import processor as P

    fake = P.FakeProcessor()
    live = P.StripeProcessor(api_key="sk_live_...")

Both satisfy P.PaymentProcessor.
"""

from marketplace.processor._types import (
    METADATA_PRODUCT_ID,
    METADATA_BUYER_EMAIL,
    SessionStatus,
    PaymentSession,
    SessionRequest,
    CreatedSession,
    ProcessorErrorKind,
    ProcessorError,
)
from marketplace.processor._port import PaymentProcessor
from marketplace.processor._fake import FakeProcessor
from marketplace.processor._stripe import StripeProcessor

__all__ = (
    # Types
    "METADATA_PRODUCT_ID",
    "METADATA_BUYER_EMAIL",
    "SessionStatus",
    "PaymentSession",
    "SessionRequest",
    "CreatedSession",
    "ProcessorErrorKind",
    "ProcessorError",
    # Processors
    "PaymentProcessor",
    "FakeProcessor",
    "StripeProcessor",
)
