"""
Domain models for the cart promotion handler.

These mirror the entities a storefront keeps for promotions: orders and their
line items, promotions with their typed rules and actions, the order/promotion
association created when a code is redeemed, and the adjustments (discounts)
that activation creates.

Design decisions:
- Using Pydantic for validation and serialization (fixtures are plain JSON)
- Promotion rules are a discriminated union on ``kind``, so every rule kind is
  an explicit class rather than a type-name string
- Rule id sets are plain sets; an empty set is a legitimate (unsatisfiable) rule
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict, field_validator


# =============================================================================
# Enums
# =============================================================================

class RuleKind(str, Enum):
    """Kinds of promotion rules."""
    USER = "user"
    PRODUCT = "product"
    STORE = "store"
    TAXON = "taxon"
    ITEM_TOTAL = "item_total"
    OTHER = "other"


class MatchPolicy(str, Enum):
    """How a promotion combines its rules when checking eligibility."""
    ALL = "all"    # Every applicable rule must hold
    ANY = "any"    # At least one applicable rule must hold


class ComparisonOperator(str, Enum):
    """Operators supported by the item total rule."""
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"


class AdjustableType(str, Enum):
    """What an adjustment is attached to."""
    ORDER = "order"
    LINE_ITEM = "line_item"


class ActivationLevel(str, Enum):
    """Granularity at which a promotion was found eligible."""
    LINE_ITEM = "line_item"
    ORDER = "order"


# =============================================================================
# Catalog and Orders
# =============================================================================

class Product(BaseModel):
    """A catalog product. Taxons are the categories it's filed under."""
    id: str = Field(..., description="Unique product identifier (SKU)")
    name: str = Field(..., description="Product display name")
    price: float = Field(..., ge=0, description="Current price")
    taxon_ids: set[str] = Field(default_factory=set, description="Taxons this product belongs to")


class LineItem(BaseModel):
    """A single item within an order."""
    id: str = Field(..., description="Unique line item identifier")
    order_id: str = Field(..., description="Owning order")
    product_id: str = Field(..., description="Reference to product")
    quantity: int = Field(default=1, ge=1, description="Quantity ordered")
    price: float = Field(..., ge=0, description="Unit price at time of adding")

    @property
    def amount(self) -> float:
        """Line total before adjustments."""
        return round(self.price * self.quantity, 2)


class Order(BaseModel):
    """
    An order (cart) being built by a customer.

    ``item_total`` is stored rather than derived: checkout code recalculates
    it, and eligibility predicates read whatever value is current.
    """
    id: str = Field(..., description="Unique order identifier")
    user_id: Optional[str] = Field(default=None, description="Owning user, None for guest carts")
    store_id: str = Field(..., description="Store the order was placed in")
    line_items: list[LineItem] = Field(default_factory=list, description="Items in this order")
    item_total: float = Field(default=0.0, ge=0, description="Sum of line item amounts")

    @property
    def product_ids(self) -> set[str]:
        """Distinct products currently in the order."""
        return {item.product_id for item in self.line_items}

    def get_line_item(self, line_item_id: str) -> Optional[LineItem]:
        for item in self.line_items:
            if item.id == line_item_id:
                return item
        return None

    def recalculate_item_total(self) -> float:
        self.item_total = round(sum(item.amount for item in self.line_items), 2)
        return self.item_total


# =============================================================================
# Promotion Rules
# =============================================================================

class UserRule(BaseModel):
    """Restricts a promotion to specific users."""
    kind: Literal["user"] = "user"
    user_ids: set[str] = Field(default_factory=set)


class ProductRule(BaseModel):
    """Restricts a promotion to orders containing specific products."""
    kind: Literal["product"] = "product"
    product_ids: set[str] = Field(default_factory=set)


class StoreRule(BaseModel):
    """Restricts a promotion to orders placed in specific stores."""
    kind: Literal["store"] = "store"
    store_ids: set[str] = Field(default_factory=set)


class TaxonRule(BaseModel):
    """Restricts a promotion to orders containing products in specific taxons."""
    kind: Literal["taxon"] = "taxon"
    taxon_ids: set[str] = Field(default_factory=set)


class ItemTotalRule(BaseModel):
    """Requires the order's item total to compare against an amount."""
    kind: Literal["item_total"] = "item_total"
    operator: ComparisonOperator = ComparisonOperator.GT
    amount: float = Field(..., ge=0)


class OtherRule(BaseModel):
    """
    Any rule the candidate filters don't know about.

    Only the eligibility predicate looks at these, through an evaluator
    registered under ``name``.
    """
    kind: Literal["other"] = "other"
    name: str
    preferences: dict[str, Any] = Field(default_factory=dict)


PromotionRule = Annotated[
    Union[UserRule, ProductRule, StoreRule, TaxonRule, ItemTotalRule, OtherRule],
    Field(discriminator="kind"),
]


# =============================================================================
# Promotion Actions
# =============================================================================

class CreateItemAdjustments(BaseModel):
    """Discounts line items by a flat percentage of their amount."""
    type: Literal["create_item_adjustments"] = "create_item_adjustments"
    percent: float = Field(..., ge=0, le=100)


class CreateAdjustment(BaseModel):
    """Discounts the whole order by a flat percentage of its item total."""
    type: Literal["create_adjustment"] = "create_adjustment"
    percent: float = Field(..., ge=0, le=100)


PromotionAction = Annotated[
    Union[CreateItemAdjustments, CreateAdjustment],
    Field(discriminator="type"),
]


# =============================================================================
# Promotions
# =============================================================================

def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Windows are compared against naive UTC clocks."""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Promotion(BaseModel):
    """
    A promotional campaign.

    Rules gate it, actions execute it. ``codes`` lists the redemption codes
    that belong to this promotion; a promotion without codes can still be
    connected to an order (e.g. by an admin).
    """
    id: str = Field(..., description="Unique promotion identifier")
    name: str = Field(..., description="Display name, used as adjustment label")
    active: bool = Field(default=True)
    apply_automatically: bool = Field(default=False)
    starts_at: Optional[datetime] = Field(default=None)
    expires_at: Optional[datetime] = Field(default=None)
    match_policy: MatchPolicy = Field(default=MatchPolicy.ALL)
    usage_limit: Optional[int] = Field(default=None, ge=0, description="Max orders this promotion may discount")
    rules: list[PromotionRule] = Field(default_factory=list)
    actions: list[PromotionAction] = Field(default_factory=list)
    codes: list[str] = Field(default_factory=list)

    @field_validator("starts_at", "expires_at")
    @classmethod
    def window_to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(value)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Active flag set and ``now`` within the start/expiry window."""
        if not self.active:
            return False
        now = naive_utc(now) or datetime.utcnow()
        if self.starts_at and now < self.starts_at:
            return False
        if self.expires_at and now > self.expires_at:
            return False
        return True

    def has_code(self, code: str) -> bool:
        return code.lower() in {c.lower() for c in self.codes}


class OrderPromotion(BaseModel):
    """Association between an order and a promotion. Its existence means 'connected'."""
    order_id: str
    promotion_id: str
    promotion_code: Optional[str] = None


class Adjustment(BaseModel):
    """A discount created by activating a promotion."""
    id: str
    order_id: str
    promotion_id: str
    adjustable_type: AdjustableType
    adjustable_id: str
    amount: float = Field(..., description="Negative for discounts")
    label: str
    promotion_code: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(use_enum_values=True)


class ActivationOutcome(BaseModel):
    """What happened to one candidate promotion during a dispatch."""
    promotion_id: str
    activated: bool
    level: Optional[ActivationLevel] = None
    promotion_code: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)
