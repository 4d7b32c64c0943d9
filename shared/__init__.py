"""
Shared infrastructure for the cart promotion handler.

This package contains code used by the handler, the promotion collaborators
and the app:
- Domain models (Order, LineItem, Promotion, rules, actions, adjustments)
- JSON-backed promotion store
- Error taxonomy
- Settings
"""

from shared.models import (
    Product,
    Order,
    LineItem,
    Promotion,
    PromotionRule,
    UserRule,
    ProductRule,
    StoreRule,
    TaxonRule,
    ItemTotalRule,
    OtherRule,
    CreateItemAdjustments,
    CreateAdjustment,
    OrderPromotion,
    Adjustment,
    ActivationOutcome,
    RuleKind,
)
from shared.data_store import PromotionStore
from shared.errors import StorageError, ExclusionProviderFailure, ConfigurationError

__all__ = [
    "Product",
    "Order",
    "LineItem",
    "Promotion",
    "PromotionRule",
    "UserRule",
    "ProductRule",
    "StoreRule",
    "TaxonRule",
    "ItemTotalRule",
    "OtherRule",
    "CreateItemAdjustments",
    "CreateAdjustment",
    "OrderPromotion",
    "Adjustment",
    "ActivationOutcome",
    "RuleKind",
    "PromotionStore",
    "StorageError",
    "ExclusionProviderFailure",
    "ConfigurationError",
]
