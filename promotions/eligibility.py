"""
Promotion eligibility predicate.

Answers "does this promotion currently apply to this order (or line item),
given this redemption code?". The cart promotion handler treats this as a
black box; this is the implementation the app and CLI wire in.

Checks, in order:
1. The promotion is active and inside its start/expiry window
2. A supplied code belongs to the promotion
3. The usage limit (orders already discounted) isn't reached
4. Rules applicable to the subject hold under the promotion's match policy.
   No applicable rules means eligible.

For a line item, product and taxon rules look at the line item's product;
every other rule looks at the order the line item belongs to.
"""

import logging
import operator
from datetime import datetime
from typing import Callable, Optional, Union

from shared.data_store import PromotionStore
from shared.models import (
    ComparisonOperator,
    ItemTotalRule,
    LineItem,
    MatchPolicy,
    Order,
    OtherRule,
    ProductRule,
    Promotion,
    StoreRule,
    TaxonRule,
    UserRule,
)

logger = logging.getLogger("promotion_eligibility")


# (rule, order, line_item or None) -> bool
OtherRuleEvaluator = Callable[[OtherRule, Order, Optional[LineItem]], bool]

COMPARISONS = {
    ComparisonOperator.GT: operator.gt,
    ComparisonOperator.GTE: operator.ge,
    ComparisonOperator.LT: operator.lt,
    ComparisonOperator.LTE: operator.le,
    ComparisonOperator.EQ: operator.eq,
}


class PromotionEligibility:
    """
    Reference eligibility predicate backed by the promotion store.

    Rules the candidate filters don't know about (``OtherRule``) are checked
    by evaluators registered by name:

        eligibility = PromotionEligibility(store)
        eligibility.register("first_order", lambda rule, order, item: order.user_id is not None)
    """

    def __init__(
        self,
        store: PromotionStore,
        other_evaluators: Optional[dict[str, OtherRuleEvaluator]] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.clock = clock
        self._other_evaluators: dict[str, OtherRuleEvaluator] = dict(other_evaluators or {})

    def register(self, name: str, evaluator: OtherRuleEvaluator) -> None:
        self._other_evaluators[name] = evaluator

    def eligible(
        self,
        promotion: Promotion,
        subject: Union[Order, LineItem],
        promotion_code: Optional[str] = None,
    ) -> bool:
        if isinstance(subject, LineItem):
            line_item = subject
            order = self.store.get_order(line_item.order_id)
            if order is None:
                logger.warning(f"Line item {line_item.id} references unknown order {line_item.order_id}")
                return False
        else:
            line_item = None
            order = subject

        if not promotion.is_active(self.clock()):
            return False
        if promotion_code is not None and not promotion.has_code(promotion_code):
            logger.debug(f"Code {promotion_code!r} doesn't belong to promotion {promotion.id}")
            return False
        if promotion.usage_limit is not None:
            used = self.store.count_orders_using_promotion(promotion.id, exclude_order_id=order.id)
            if used >= promotion.usage_limit:
                logger.debug(f"Promotion {promotion.id} usage limit reached ({used}/{promotion.usage_limit})")
                return False

        if not promotion.rules:
            return True

        results = (self._rule_holds(rule, order, line_item) for rule in promotion.rules)
        if promotion.match_policy == MatchPolicy.ANY:
            return any(results)
        return all(results)

    def _rule_holds(self, rule, order: Order, line_item: Optional[LineItem]) -> bool:
        if isinstance(rule, UserRule):
            return order.user_id in rule.user_ids
        if isinstance(rule, StoreRule):
            return order.store_id in rule.store_ids
        if isinstance(rule, ItemTotalRule):
            return COMPARISONS[rule.operator](order.item_total, rule.amount)
        if isinstance(rule, ProductRule):
            product_ids = {line_item.product_id} if line_item else order.product_ids
            return bool(rule.product_ids & product_ids)
        if isinstance(rule, TaxonRule):
            product_ids = {line_item.product_id} if line_item else order.product_ids
            return bool(rule.taxon_ids & self.store.taxon_ids_for_products(product_ids))
        if isinstance(rule, OtherRule):
            evaluator = self._other_evaluators.get(rule.name)
            if evaluator is None:
                logger.warning(f"No evaluator registered for rule {rule.name!r}, treating it as unmet")
                return False
            return bool(evaluator(rule, order, line_item))
        raise TypeError(f"Unknown rule {rule!r}")
