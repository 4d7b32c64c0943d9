"""
Candidate selection: which promotions get looked at for this order.

Candidates are the union of
- promotions explicitly connected to the order (a redeemed code, an admin
  attaching one), which skip the automatic filters, and
- active auto-apply promotions that survive the rule filter pipeline.
"""

import logging
from typing import Optional

from shared.data_store import PromotionStore
from shared.models import LineItem, Order, Promotion
from promotion_handler.rule_filters import RuleFilterPipeline

logger = logging.getLogger("candidate_selector")


class CandidateSelector:
    """Computes the deduplicated set of promotions to dispatch for an order."""

    def __init__(self, store: PromotionStore, pipeline: Optional[RuleFilterPipeline] = None):
        self.store = store
        self.pipeline = pipeline or RuleFilterPipeline(store)

    def connected(self, order: Order) -> list[Promotion]:
        return self.store.connected_promotions(order.id)

    def automatic(self, order: Order) -> list[Promotion]:
        return self.pipeline.filter(order, self.store.active_automatic_promotions())

    def select(self, order: Order, line_item: Optional[LineItem] = None) -> list[Promotion]:
        """
        Connected and automatic promotions, each promotion id once.

        ``line_item`` doesn't narrow the selection; it's accepted so callers
        can pass the same arguments they pass to the dispatcher.
        """
        selected: dict[str, Promotion] = {}
        for promotion in self.connected(order):
            selected.setdefault(promotion.id, promotion)
        connected_count = len(selected)
        for promotion in self.automatic(order):
            selected.setdefault(promotion.id, promotion)

        logger.debug(
            f"Order {order.id}: {len(selected)} candidate(s) "
            f"({connected_count} connected, {len(selected) - connected_count} automatic only)"
        )
        return list(selected.values())
