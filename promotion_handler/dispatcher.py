"""
Eligibility dispatch for candidate promotions.

For each candidate the dispatcher resolves the order's redemption code, asks
the eligibility predicate whether the promotion applies (line item first, if
one was supplied, then the whole order) and activates it when it does.

Ineligibility is a normal outcome. Each candidate gets at most one activation
per dispatch, and no candidate's outcome depends on another's.
"""

import logging
from typing import Iterable, Optional, Protocol, Union

from shared.data_store import PromotionStore
from shared.models import ActivationLevel, ActivationOutcome, LineItem, Order, Promotion

logger = logging.getLogger("eligibility_dispatcher")


class EligibilityChecker(Protocol):
    def eligible(
        self,
        promotion: Promotion,
        subject: Union[Order, LineItem],
        promotion_code: Optional[str] = None,
    ) -> bool: ...


class Activator(Protocol):
    """Must be idempotent: activating twice for the same subject creates nothing new."""

    def activate(
        self,
        promotion: Promotion,
        line_item: Optional[LineItem],
        order: Order,
        promotion_code: Optional[str] = None,
    ) -> None: ...


class EligibilityDispatcher:
    """Routes each candidate to line-item or order granularity and activates it."""

    def __init__(self, store: PromotionStore, eligibility: EligibilityChecker, activator: Activator):
        self.store = store
        self.eligibility = eligibility
        self.activator = activator

    def dispatch(
        self,
        candidates: Iterable[Promotion],
        order: Order,
        line_item: Optional[LineItem] = None,
    ) -> list[ActivationOutcome]:
        return [self._dispatch_one(promotion, order, line_item) for promotion in candidates]

    def _dispatch_one(
        self,
        promotion: Promotion,
        order: Order,
        line_item: Optional[LineItem],
    ) -> ActivationOutcome:
        code = self.store.redemption_code(order.id, promotion.id)

        if line_item is not None and self.eligibility.eligible(promotion, line_item, code):
            level = ActivationLevel.LINE_ITEM
        elif self.eligibility.eligible(promotion, order, code):
            level = ActivationLevel.ORDER
        else:
            logger.debug(f"Promotion {promotion.id} not eligible for order {order.id}")
            return ActivationOutcome(promotion_id=promotion.id, activated=False, promotion_code=code)

        # Order-level activation doesn't pass the line item along
        self.activator.activate(
            promotion,
            line_item if level == ActivationLevel.LINE_ITEM else None,
            order,
            code,
        )
        logger.info(f"Activated promotion {promotion.id} for order {order.id} at {level.value} level")
        return ActivationOutcome(
            promotion_id=promotion.id,
            activated=True,
            level=level,
            promotion_code=code,
        )
