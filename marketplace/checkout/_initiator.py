"""
Checkout session initiator — fluent builder + executor.

    init = (
        initiator()
        .processor(FakeProcessor())
        .client_domain("https://shop.example")
        .policy(Policy().with_processor_timeout(seconds=5))
        .build()
    )

    match await init.create_session(cart):
        case Ok(redirect): ...
        case Error(err): ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

import combinators
import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from marketplace._policy import Policy
from marketplace._types import Lazy, to_minor_units
from marketplace.checkout._types import (
    CartItem,
    CheckoutRedirect,
    CheckoutError,
    CheckoutErrorKind,
)
from marketplace.processor import (
    METADATA_PRODUCT_ID,
    METADATA_BUYER_EMAIL,
    PaymentProcessor,
    ProcessorError,
    SessionRequest,
)

logger = structlog.get_logger(__name__)

SUCCESS_PATH = "/paymentSuccess?session_id={CHECKOUT_SESSION_ID}"
CANCEL_PATH = "/plant/{product_id}"


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def _invalid(message: str) -> CheckoutError:
    return CheckoutError(CheckoutErrorKind.INVALID_CART, message)


def validate_cart(cart: CartItem) -> CheckoutError | None:
    if not cart.product_id:
        return _invalid("product_id is required")

    try:
        price = Decimal(str(cart.price))
    except InvalidOperation:
        return _invalid(f"price is not a number: {cart.price!r}")
    if not price.is_finite() or price <= 0:
        return _invalid(f"price must be positive, got {cart.price}")
    if to_minor_units(price) < 1:
        return _invalid(f"price rounds to zero minor units: {cart.price}")

    if isinstance(cart.quantity, bool) or not isinstance(cart.quantity, int):
        return _invalid(f"quantity must be an integer, got {cart.quantity!r}")
    if cart.quantity < 1:
        return _invalid(f"quantity must be positive, got {cart.quantity}")

    if not cart.buyer_email or not cart.buyer_email.strip():
        return _invalid("buyer_email is required")
    if not cart.name or not cart.name.strip():
        return _invalid("name is required")

    return None


def _upstream(err: ProcessorError | combinators.TimeoutError) -> CheckoutError:
    match err:
        case combinators.TimeoutError(seconds=seconds):
            message = f"Processor timed out after {seconds}s"
        case _:
            message = err.message
    return CheckoutError(CheckoutErrorKind.UPSTREAM_PAYMENT, message, cause=err)


# ═══════════════════════════════════════════════════════════════════════════════
# Initiator — compiled
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class CheckoutInitiator:
    """Opens processor sessions for carts. Performs no local writes."""

    processor: PaymentProcessor
    client_domain: str
    policy: Policy

    def request_for(self, cart: CartItem) -> SessionRequest:
        domain = self.client_domain.rstrip("/")
        return SessionRequest(
            unit_amount=to_minor_units(cart.price),
            quantity=cart.quantity,
            currency=self.policy.currency,
            customer_email=cart.buyer_email,
            name=cart.name,
            description=cart.description,
            image=cart.image,
            success_url=domain + SUCCESS_PATH,
            cancel_url=domain + CANCEL_PATH.format(product_id=cart.product_id),
            metadata={
                METADATA_PRODUCT_ID: cart.product_id,
                METADATA_BUYER_EMAIL: cart.buyer_email,
            },
        )

    def create_session(
        self, cart: CartItem
    ) -> Lazy[CheckoutRedirect, CheckoutError]:
        """Validate cart, ask the processor for a session, return the redirect."""
        processor = self.processor
        seconds = self.policy.processor_timeout_seconds

        async def execute() -> Result[CheckoutRedirect, CheckoutError]:
            if invalid := validate_cart(cart):
                logger.info(
                    "checkout_rejected", product_id=cart.product_id, reason=invalid.message
                )
                return Error(invalid)

            request = self.request_for(cart)
            call = LazyCoroResult(lambda: processor.create_session(request))

            match await combinators.timeout(call, seconds=seconds):
                case Ok(created):
                    logger.info(
                        "session_created",
                        session_id=created.session_id,
                        product_id=cart.product_id,
                        amount_total=request.amount_total,
                    )
                    return Ok(CheckoutRedirect(created.session_id, created.redirect_url))
                case Error(err):
                    error = _upstream(err)
                    logger.warning(
                        "session_create_failed",
                        product_id=cart.product_id,
                        error=error.message,
                    )
                    return Error(error)

        return LazyCoroResult(execute)


# ═══════════════════════════════════════════════════════════════════════════════
# Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Initiator:
    """
    Fluent checkout initiator builder.
    """

    _processor: PaymentProcessor | None
    _client_domain: str
    _policy: Policy

    def processor(self, p: PaymentProcessor) -> Initiator:
        """Set payment processor."""
        return replace(self, _processor=p)

    def client_domain(self, url: str) -> Initiator:
        """Base URL the buyer returns to after paying or cancelling."""
        return replace(self, _client_domain=url)

    def policy(self, p: Policy) -> Initiator:
        """Set timeout and currency policy."""
        return replace(self, _policy=p)

    def build(self) -> CheckoutInitiator:
        if self._processor is None:
            raise ValueError("processor() is required")

        return CheckoutInitiator(
            processor=self._processor,
            client_domain=self._client_domain,
            policy=self._policy,
        )


def initiator() -> Initiator:
    """
    Create checkout initiator builder.

    Example:
        init = initiator().processor(stripe_processor).build()
        redirect = await init.create_session(cart)
    """
    return Initiator(
        _processor=None,
        _client_domain="http://localhost:5173",
        _policy=Policy(),
    )


__all__ = (
    "SUCCESS_PATH",
    "CANCEL_PATH",
    "validate_cart",
    "CheckoutInitiator",
    "Initiator",
    "initiator",
)
