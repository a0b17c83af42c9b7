"""
marketplace — checkout-to-order reconciliation for a small marketplace.

    from marketplace import ledger as L     # Products and stock
    from marketplace import orders as O     # One order per payment
    from marketplace import processor as P  # Payment processor sessions
    from marketplace import checkout as C   # Open a session for a cart
    from marketplace import reconcile as R  # Paid session → order

    async with await Marketplace.start(MarketplaceSettings()) as mp:
        redirect = await mp.checkout.create_session(cart)
        result = await mp.reconciler.run(redirect.unwrap().session_id)
"""

from marketplace import ledger
from marketplace import orders
from marketplace import processor
from marketplace import checkout
from marketplace import reconcile
from marketplace._types import (
    Lazy,
    to_minor_units,
    from_minor_units,
)
from marketplace._policy import Policy
from marketplace._settings import MarketplaceSettings
from marketplace._logging import configure_logging
from marketplace._db import create_database
from marketplace._app import Marketplace, make_processor

__version__ = "0.1.0"

__all__ = (
    "ledger",
    "orders",
    "processor",
    "checkout",
    "reconcile",
    "Lazy",
    "to_minor_units",
    "from_minor_units",
    "Policy",
    "MarketplaceSettings",
    "configure_logging",
    "create_database",
    "Marketplace",
    "make_processor",
)
