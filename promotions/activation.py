"""
Promotion activation: turn an eligible promotion into adjustments.

Runs each of the promotion's actions against the order and connects the
promotion to the order when something was created. Safe to call repeatedly:
an adjustment that already exists for (promotion, adjustable) isn't created
again, which is what makes concurrent or repeated cart activations harmless.
"""

import logging
from typing import Optional
from uuid import uuid4

from shared.data_store import PromotionStore
from shared.models import (
    AdjustableType,
    Adjustment,
    CreateAdjustment,
    CreateItemAdjustments,
    LineItem,
    Order,
    ProductRule,
    Promotion,
    TaxonRule,
)

logger = logging.getLogger("promotion_activator")


def flat_percent(base: float, percent: float) -> float:
    """Discount amount (negative) for a flat percentage of ``base``."""
    return -round(base * percent / 100, 2)


class PromotionActivator:
    """Creates adjustments for a promotion's actions, at most once per adjustable."""

    def __init__(self, store: PromotionStore):
        self.store = store

    def activate(
        self,
        promotion: Promotion,
        line_item: Optional[LineItem],
        order: Order,
        promotion_code: Optional[str] = None,
    ) -> list[Adjustment]:
        """
        Perform every action of ``promotion``.

        Item actions adjust ``line_item`` when given, otherwise every line
        item of the order; either way only items whose product fits the
        promotion's product and taxon rules.
        Returns the adjustments created by this call.
        """
        created: list[Adjustment] = []
        for action in promotion.actions:
            if isinstance(action, CreateItemAdjustments):
                candidates = [line_item] if line_item is not None else order.line_items
                items = [item for item in candidates if self._actionable(promotion, item)]
                for item in items:
                    adjustment = self._adjust(
                        promotion, order, AdjustableType.LINE_ITEM, item.id,
                        flat_percent(item.amount, action.percent), promotion_code,
                    )
                    if adjustment:
                        created.append(adjustment)
            elif isinstance(action, CreateAdjustment):
                adjustment = self._adjust(
                    promotion, order, AdjustableType.ORDER, order.id,
                    flat_percent(order.item_total, action.percent), promotion_code,
                )
                if adjustment:
                    created.append(adjustment)
            else:
                raise TypeError(f"Unknown action {action!r} on promotion {promotion.id}")

        if created:
            self.store.connect_promotion(order.id, promotion.id, promotion_code)
        return created

    def _actionable(self, promotion: Promotion, line_item: LineItem) -> bool:
        """
        Whether an item action should touch this line item: its product must
        satisfy the promotion's product and taxon rules, if it has any.
        """
        product_rules = [r for r in promotion.rules if isinstance(r, ProductRule)]
        if product_rules and not any(line_item.product_id in r.product_ids for r in product_rules):
            return False
        taxon_rules = [r for r in promotion.rules if isinstance(r, TaxonRule)]
        if taxon_rules:
            taxon_ids = self.store.taxon_ids_for_products([line_item.product_id])
            if not any(r.taxon_ids & taxon_ids for r in taxon_rules):
                return False
        return True

    def _adjust(
        self,
        promotion: Promotion,
        order: Order,
        adjustable_type: AdjustableType,
        adjustable_id: str,
        amount: float,
        promotion_code: Optional[str],
    ) -> Optional[Adjustment]:
        if self.store.find_adjustment(promotion.id, adjustable_type, adjustable_id):
            return None

        adjustment = self.store.add_adjustment(Adjustment(
            id=f"adj-{uuid4().hex[:8]}",
            order_id=order.id,
            promotion_id=promotion.id,
            adjustable_type=adjustable_type,
            adjustable_id=adjustable_id,
            amount=amount,
            label=f"Promotion ({promotion.name})",
            promotion_code=promotion_code,
        ))
        logger.info(
            f"Created {adjustable_type.value} adjustment {amount:.2f} "
            f"for promotion {promotion.id} on {adjustable_id}"
        )
        return adjustment
