"""
Demo scenarios for the cart promotion handler.

Each scenario builds a fresh store from the JSON fixtures in data/, mutates a
cart the way checkout code would, and runs the handler. Returns the
adjustments created so the CLI (and tests) can inspect them.
"""

import logging

from shared.data_store import PromotionStore
from shared.models import Adjustment
from promotion_handler.cart import CartPromotionHandler
from promotions import PromotionActivator, PromotionEligibility

logger = logging.getLogger("demo")


def _build_handler(store: PromotionStore) -> CartPromotionHandler:
    return CartPromotionHandler(
        store=store,
        eligibility=PromotionEligibility(store),
        activator=PromotionActivator(store),
    )


def _print_adjustments(adjustments: list[Adjustment]) -> None:
    if not adjustments:
        print("  (none)")
    for adj in adjustments:
        code = f" [code {adj.promotion_code}]" if adj.promotion_code else ""
        print(f"  {adj.label}: {adj.amount:.2f} on {adj.adjustable_type} {adj.adjustable_id}{code}")


def run_add_to_cart_demo() -> list[Adjustment]:
    """
    Bob adds a router to a cart that already carries the WELCOME10 code.

    The networking promotion (taxon rule) becomes a candidate because of the
    router; the welcome promotion is connected through its code.
    """
    print("\n" + "=" * 70)
    print("DEMO: Add to cart")
    print("=" * 70 + "\n")

    store = PromotionStore()
    handler = _build_handler(store)

    line_item = store.add_line_item("ord-002", "prod-001")
    order = store.get_order("ord-002")
    print(f"Added {line_item.product_id} to {order.id}, item total now {order.item_total:.2f}")

    outcomes = handler.activate(order, line_item)
    for outcome in outcomes:
        status = f"activated ({outcome.level})" if outcome.activated else "not eligible"
        print(f"  {outcome.promotion_id}: {status}")

    print("\nAdjustments:")
    adjustments = store.get_adjustments(order.id)
    _print_adjustments(adjustments)
    return adjustments


def run_item_total_demo() -> list[Adjustment]:
    """
    A guest cart crosses the Big Spender threshold.

    Below the threshold nothing is created; above it exactly one adjustment
    is created, and re-running activation doesn't create another.
    """
    print("\n" + "=" * 70)
    print("DEMO: Item total threshold")
    print("=" * 70 + "\n")

    store = PromotionStore()
    handler = _build_handler(store)

    for item_total in (10.0, 150.0, 150.0):
        order = store.set_item_total("ord-004", item_total)
        handler.activate(order)
        count = len(store.get_adjustments(order.id))
        print(f"Item total {item_total:.2f}: {count} adjustment(s) on the order")

    print("\nAdjustments:")
    adjustments = store.get_adjustments("ord-004")
    _print_adjustments(adjustments)
    return adjustments


def run_outlet_demo() -> list[Adjustment]:
    """
    Carol's outlet-store order picks up store, user, product and item total promotions.
    """
    print("\n" + "=" * 70)
    print("DEMO: Outlet store order")
    print("=" * 70 + "\n")

    store = PromotionStore()
    handler = _build_handler(store)

    order = store.get_order("ord-003")
    outcomes = handler.activate(order)
    print(f"Activated: {sorted(o.promotion_id for o in outcomes if o.activated)}")

    print("\nAdjustments:")
    adjustments = store.get_adjustments(order.id)
    _print_adjustments(adjustments)
    return adjustments


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )
    run_add_to_cart_demo()
    run_item_total_demo()
    run_outlet_demo()
