"""
Rule filter pipeline for automatic promotions.

Narrows the pool of active, auto-apply promotions down to the ones worth an
eligibility check for this order. A promotion scoped to a product that isn't
in the cart never reaches the (more expensive) eligibility predicate.

Semantics, per rule kind (user, product, store, taxon):
- no rule of that kind: the promotion passes that filter
- one or more rules of that kind: it passes if any of them matches
- a rule with an empty id set matches nothing
A promotion must pass every filter. Item total and other rules don't take part.

Rules for the whole pool are grouped by kind once, up front, and the order's
taxons are read once; the filters themselves are pure set operations.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from shared.data_store import PromotionStore
from shared.models import (
    ItemTotalRule,
    Order,
    OtherRule,
    ProductRule,
    Promotion,
    RuleKind,
    StoreRule,
    TaxonRule,
    UserRule,
)
from promotion_handler.exclusions import ExclusionRegistry

logger = logging.getLogger("rule_filters")


@dataclass
class GroupedRules:
    """One promotion's rules, split by kind."""
    user: list[UserRule] = field(default_factory=list)
    product: list[ProductRule] = field(default_factory=list)
    store: list[StoreRule] = field(default_factory=list)
    taxon: list[TaxonRule] = field(default_factory=list)
    item_total: list[ItemTotalRule] = field(default_factory=list)
    other: list[OtherRule] = field(default_factory=list)


def group_rules(promotion: Promotion) -> GroupedRules:
    """Split a promotion's rules by kind. Raises TypeError on an unknown rule."""
    grouped = GroupedRules()
    for rule in promotion.rules:
        if isinstance(rule, UserRule):
            grouped.user.append(rule)
        elif isinstance(rule, ProductRule):
            grouped.product.append(rule)
        elif isinstance(rule, StoreRule):
            grouped.store.append(rule)
        elif isinstance(rule, TaxonRule):
            grouped.taxon.append(rule)
        elif isinstance(rule, ItemTotalRule):
            grouped.item_total.append(rule)
        elif isinstance(rule, OtherRule):
            grouped.other.append(rule)
        else:
            raise TypeError(f"Unknown rule {rule!r} on promotion {promotion.id}")
    return grouped


@dataclass(frozen=True)
class OrderFacts:
    """What the filters need to know about the order, read once per run."""
    user_id: Optional[str]
    store_id: str
    product_ids: frozenset[str]
    taxon_ids: frozenset[str]


def _any_contains(rules, attribute: str, value: Optional[str]) -> bool:
    return any(value in getattr(rule, attribute) for rule in rules)


def _any_intersects(rules, attribute: str, values: frozenset[str]) -> bool:
    return any(getattr(rule, attribute) & values for rule in rules)


def user_filter(rules: GroupedRules, facts: OrderFacts) -> bool:
    return not rules.user or _any_contains(rules.user, "user_ids", facts.user_id)


def product_filter(rules: GroupedRules, facts: OrderFacts) -> bool:
    return not rules.product or _any_intersects(rules.product, "product_ids", facts.product_ids)


def store_filter(rules: GroupedRules, facts: OrderFacts) -> bool:
    return not rules.store or _any_contains(rules.store, "store_ids", facts.store_id)


def taxon_filter(rules: GroupedRules, facts: OrderFacts) -> bool:
    return not rules.taxon or _any_intersects(rules.taxon, "taxon_ids", facts.taxon_ids)


RuleFilter = Callable[[GroupedRules, OrderFacts], bool]

# Every kind the pipeline narrows on. Item total and other rules are left to
# the eligibility predicate.
RULE_FILTERS: dict[RuleKind, RuleFilter] = {
    RuleKind.USER: user_filter,
    RuleKind.PRODUCT: product_filter,
    RuleKind.STORE: store_filter,
    RuleKind.TAXON: taxon_filter,
}
UNFILTERED_KINDS = frozenset({RuleKind.ITEM_TOTAL, RuleKind.OTHER})


class RuleFilterPipeline:
    """
    Exclusions followed by the four typed rule filters.

    Example:
        pipeline = RuleFilterPipeline(store, ExclusionRegistry([...]))
        candidates = pipeline.filter(order, store.active_automatic_promotions())
    """

    def __init__(self, store: PromotionStore, exclusions: Optional[ExclusionRegistry] = None):
        self.store = store
        self.exclusions = exclusions or ExclusionRegistry()

    def order_facts(self, order: Order) -> OrderFacts:
        product_ids = frozenset(order.product_ids)
        return OrderFacts(
            user_id=order.user_id,
            store_id=order.store_id,
            product_ids=product_ids,
            taxon_ids=frozenset(self.store.taxon_ids_for_products(product_ids)),
        )

    def filter(self, order: Order, pool: Iterable[Promotion]) -> list[Promotion]:
        """
        Narrow ``pool`` to the promotions that survive exclusions and all rule filters.

        Returns promotions in pool order, each at most once.
        """
        candidates: dict[str, Promotion] = {}
        for promotion in pool:
            candidates.setdefault(promotion.id, promotion)
        if not candidates:
            return []

        excluded = self.exclusions.excluded_ids(order)
        for promotion_id in excluded & candidates.keys():
            del candidates[promotion_id]
        if excluded:
            logger.debug(f"Order {order.id}: {len(excluded)} promotion(s) excluded by providers")

        grouped = {promotion_id: group_rules(p) for promotion_id, p in candidates.items()}
        facts = self.order_facts(order)

        for kind, rule_filter in RULE_FILTERS.items():
            before = len(candidates)
            candidates = {
                promotion_id: p for promotion_id, p in candidates.items()
                if rule_filter(grouped[promotion_id], facts)
            }
            if len(candidates) != before:
                logger.debug(f"Order {order.id}: {kind.value} filter dropped {before - len(candidates)} promotion(s)")

        return list(candidates.values())
