"""
Cart promotion handler.

This package decides which promotions to evaluate when an order changes:
- Exclusion providers veto automatic promotions per order
- The rule filter pipeline narrows automatic promotions by user, product,
  store and taxon rules
- The candidate selector adds promotions explicitly connected to the order
- The eligibility dispatcher checks and activates each candidate
"""

from promotion_handler.exclusions import ExclusionProvider, ExclusionRegistry, build_registry
from promotion_handler.rule_filters import RuleFilterPipeline, group_rules
from promotion_handler.candidates import CandidateSelector
from promotion_handler.dispatcher import EligibilityDispatcher
from promotion_handler.cart import CartPromotionHandler

__all__ = [
    "ExclusionProvider",
    "ExclusionRegistry",
    "build_registry",
    "RuleFilterPipeline",
    "group_rules",
    "CandidateSelector",
    "EligibilityDispatcher",
    "CartPromotionHandler",
]
