"""
Cart promotion handler.

Decides which promotions should be activated given the current order, and
optionally the line item that was just added to it.

"Activated" doesn't mean the order gets a discount from every promotion
looked at here. It means the promotion's eligibility was checked and, where
it held, a discount was created. The point of the indirection is to bound
cost: a promotion that requires product A is never considered unless A is in
the cart.

Cart and checkout code calls ``activate`` after every mutation. Nothing here
locks the order; two concurrent calls may both activate the same promotion,
which is fine because activation is idempotent.
"""

import logging
from typing import Optional

from shared.config import Settings, get_settings
from shared.data_store import PromotionStore, get_promotion_store
from shared.models import ActivationOutcome, LineItem, Order
from promotion_handler.candidates import CandidateSelector
from promotion_handler.dispatcher import Activator, EligibilityChecker, EligibilityDispatcher
from promotion_handler.exclusions import ExclusionRegistry, build_registry
from promotion_handler.rule_filters import RuleFilterPipeline

logger = logging.getLogger("promotion_handler")


class CartPromotionHandler:
    """
    Selects candidate promotions for an order and dispatches them.

    Example:
        handler = CartPromotionHandler(
            store=store,
            eligibility=PromotionEligibility(store),
            activator=PromotionActivator(store),
        )
        outcomes = handler.activate(order, line_item)
        activated = [o.promotion_id for o in outcomes if o.activated]
    """

    def __init__(
        self,
        store: PromotionStore,
        eligibility: EligibilityChecker,
        activator: Activator,
        exclusions: Optional[ExclusionRegistry] = None,
    ):
        self.store = store
        self.exclusions = exclusions or ExclusionRegistry()
        self.selector = CandidateSelector(store, RuleFilterPipeline(store, self.exclusions))
        self.dispatcher = EligibilityDispatcher(store, eligibility, activator)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[PromotionStore] = None,
    ) -> "CartPromotionHandler":
        """Wire a handler with the reference eligibility/activation collaborators."""
        from promotions import PromotionActivator, PromotionEligibility

        settings = settings or get_settings()
        store = store or get_promotion_store()
        return cls(
            store=store,
            eligibility=PromotionEligibility(store),
            activator=PromotionActivator(store),
            exclusions=build_registry(settings.EXCLUSION_PROVIDERS, strict=settings.EXCLUSION_STRICT_MODE),
        )

    def activate(self, order: Order, line_item: Optional[LineItem] = None) -> list[ActivationOutcome]:
        """
        Activate every candidate promotion that is currently eligible.

        Returns one outcome per candidate. Raises StorageError if the store
        can't be read, and ExclusionProviderFailure in strict mode.
        """
        candidates = self.selector.select(order, line_item)
        outcomes = self.dispatcher.dispatch(candidates, order, line_item)

        activated = sum(1 for o in outcomes if o.activated)
        logger.info(
            f"Order {order.id}"
            + (f" (line item {line_item.id})" if line_item else "")
            + f": {len(outcomes)} candidate(s), {activated} activated"
        )
        return outcomes
