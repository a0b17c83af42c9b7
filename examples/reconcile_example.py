"""
Reconcile Example — a paid session becomes exactly one order.

Run: uv run python examples/reconcile_example.py
"""

import combinators
from kungfu import Ok, Error, LazyCoroResult

from marketplace import Marketplace
from marketplace.processor import FakeProcessor
from marketplace.reconcile import Reconciliation, ReconcileError
from examples._infra import FERN, CACTUS, banner, cart_for, show, run


async def main() -> None:
    processor = FakeProcessor()
    mp = Marketplace.in_memory([FERN, CACTUS], processor=processor)

    banner("Checkout → Reconcile")

    # 1. Checkout writes nothing locally
    print("\n1. Create checkout session:")
    match await mp.checkout.create_session(cart_for(FERN)):
        case Ok(redirect):
            print(f"   redirect → {redirect.redirect_url}")
        case Error(err):
            print(f"   error: {err.message}")
            return

    # 2. Buyer hasn't paid yet
    print("\n2. Reconcile before payment:")
    show(await mp.reconciler.run(redirect.session_id))

    # 3. Buyer pays, client confirms five times at once
    processor.complete(redirect.session_id, transaction_id="tx_1")
    print("\n3. Five concurrent confirmations:")

    def confirm(session_id: str) -> LazyCoroResult[Reconciliation, ReconcileError]:
        return mp.reconciler.run(session_id)

    results = await combinators.batch_all([redirect.session_id] * 5, confirm, concurrency=5)
    for result in results.unwrap():
        show(result)

    fern = (await mp.ledger.get(FERN.id)).unwrap()
    orders = (await mp.orders.find_by_buyer("buyer@example.com")).unwrap()
    print(f"   orders={len(orders)}, {FERN.name} quantity {FERN.quantity} → {fern.quantity}")

    # 4. Product removed between checkout and confirmation
    print("\n4. Product deleted before confirmation:")
    created = (await mp.checkout.create_session(cart_for(CACTUS))).unwrap()
    await mp.ledger.remove(CACTUS.id)
    processor.complete(created.session_id)
    show(await mp.reconciler.run(created.session_id))

    # 5. Seller view
    print("\n5. Seller orders:")
    for order in (await mp.orders.find_by_seller(FERN.seller.email)).unwrap():
        print(f"   {order.id}: {order.name} ${order.price} for {order.buyer_email}")


if __name__ == "__main__":
    run(main)
