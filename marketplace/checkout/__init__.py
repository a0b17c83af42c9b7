"""
Checkout — open a payment session for a cart item.

    from marketplace import checkout as C

    init = C.initiator().processor(processor).build()
    redirect = await init.create_session(C.CartItem(...))
"""

from marketplace.checkout._types import (
    CartItem,
    CheckoutRedirect,
    CheckoutErrorKind,
    CheckoutError,
)
from marketplace.checkout._initiator import (
    SUCCESS_PATH,
    CANCEL_PATH,
    validate_cart,
    CheckoutInitiator,
    Initiator,
    initiator,
)

__all__ = (
    # Types
    "CartItem",
    "CheckoutRedirect",
    "CheckoutErrorKind",
    "CheckoutError",
    # Initiator
    "SUCCESS_PATH",
    "CANCEL_PATH",
    "validate_cart",
    "CheckoutInitiator",
    "Initiator",
    "initiator",
)
