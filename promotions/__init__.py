"""
Promotion eligibility and activation.

The cart promotion handler decides which promotions to look at; these
classes decide whether one applies and create its adjustments.
"""

from promotions.eligibility import PromotionEligibility
from promotions.activation import PromotionActivator

__all__ = [
    "PromotionEligibility",
    "PromotionActivator",
]
