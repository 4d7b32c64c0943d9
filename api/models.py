"""
Request and response models for the cart API.
"""

from typing import Optional
from pydantic import BaseModel, Field

from shared.models import ActivationOutcome, Adjustment, LineItem, Order


class AddLineItemRequest(BaseModel):
    """Add a product to a cart."""
    product_id: str = Field(..., description="Product to add")
    quantity: int = Field(default=1, ge=1, description="How many")


class ActivationResponse(BaseModel):
    """
    Result of running the promotion handler after a cart change.

    ``outcomes`` has one entry per candidate promotion; ``adjustments`` is
    every adjustment on the order afterwards, not just the new ones.
    """
    order: Order
    line_item: Optional[LineItem] = None
    outcomes: list[ActivationOutcome] = Field(default_factory=list)
    adjustments: list[Adjustment] = Field(default_factory=list)
