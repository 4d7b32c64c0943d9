"""
JSON-backed promotion store.

This module provides the data access layer the promotion handler reads from.
Catalog, orders, promotions (with their rules) and order/promotion
associations are loaded from JSON fixture files; adjustments live in memory.

Design decisions:
- Lazy loading per collection, cached until ``reload()``
- Promotions are loaded with their rules attached, so callers never go back
  to the store for a promotion's rules
- Every public read bumps ``query_count``, which lets tests assert that the
  number of reads doesn't grow with the number of promotions
- Unreadable or malformed fixtures raise StorageError, never a bare OSError
  or ValidationError
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import ValidationError

from shared.errors import StorageError
from shared.models import (
    Adjustment,
    AdjustableType,
    LineItem,
    Order,
    OrderPromotion,
    Product,
    Promotion,
)

logger = logging.getLogger("promotion_store")


class PromotionStore:
    """
    Central store for the data the cart promotion handler needs.

    Read-only from the handler's point of view. Only the activation
    collaborator (and cart mutation code) writes, and writes are in-memory.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            data_dir: Path to the directory containing JSON fixtures.
                     Defaults to ./data relative to project root.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)
        self.query_count = 0

        # In-memory caches - loaded lazily
        self._products: Optional[dict[str, Product]] = None
        self._orders: Optional[dict[str, Order]] = None
        self._promotions: Optional[dict[str, Promotion]] = None
        self._order_promotions: Optional[list[OrderPromotion]] = None
        self._adjustments: list[Adjustment] = []

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """
        Load a JSON fixture file. A missing file in an existing data
        directory is an empty collection; a missing directory is an
        unreachable store.
        """
        if not self.data_dir.is_dir():
            raise StorageError(f"Data directory not found: {self.data_dir}", source=str(self.data_dir))
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        try:
            with open(filepath, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {filepath}: {e}")
            raise StorageError(f"Cannot read {filename}: {e}", source=filename) from e
        if not isinstance(data, list):
            raise StorageError(f"{filename} must contain a JSON array", source=filename)
        return data

    def _build(self, filename: str, build):
        try:
            return build(self._load_json(filename))
        except ValidationError as e:
            logger.error(f"Malformed records in {filename}: {e}")
            raise StorageError(f"Malformed records in {filename}", source=filename) from e

    def _ensure_products_loaded(self):
        if self._products is None:
            self._products = self._build(
                "products.json", lambda data: {p["id"]: Product(**p) for p in data}
            )

    def _ensure_orders_loaded(self):
        if self._orders is None:
            def build(data):
                orders = {}
                for o in data:
                    for item in o.get("line_items", []):
                        item.setdefault("order_id", o["id"])
                    orders[o["id"]] = Order(**o)
                return orders
            self._orders = self._build("orders.json", build)

    def _ensure_promotions_loaded(self):
        if self._promotions is None:
            self._promotions = self._build(
                "promotions.json", lambda data: {p["id"]: Promotion(**p) for p in data}
            )

    def _ensure_order_promotions_loaded(self):
        if self._order_promotions is None:
            self._order_promotions = self._build(
                "order_promotions.json", lambda data: [OrderPromotion(**op) for op in data]
            )

    # =========================================================================
    # Promotion Operations
    # =========================================================================

    def active_automatic_promotions(self, now: Optional[datetime] = None) -> list[Promotion]:
        """
        All active promotions flagged ``apply_automatically``.

        Rules come attached to each promotion.
        """
        self.query_count += 1
        self._ensure_promotions_loaded()
        return [
            p for p in self._promotions.values()
            if p.apply_automatically and p.is_active(now)
        ]

    def connected_promotions(self, order_id: str, now: Optional[datetime] = None) -> list[Promotion]:
        """Active promotions joined to the order through an OrderPromotion row."""
        self.query_count += 1
        self._ensure_promotions_loaded()
        self._ensure_order_promotions_loaded()
        connected = []
        for op in self._order_promotions:
            if op.order_id != order_id:
                continue
            promotion = self._promotions.get(op.promotion_id)
            if promotion and promotion.is_active(now):
                connected.append(promotion)
        return connected

    def redemption_code(self, order_id: str, promotion_id: str) -> Optional[str]:
        """The code the order redeemed for this promotion, if any."""
        self.query_count += 1
        self._ensure_order_promotions_loaded()
        for op in self._order_promotions:
            if op.order_id == order_id and op.promotion_id == promotion_id:
                return op.promotion_code
        return None

    def get_order_promotions(self, order_id: str) -> list[OrderPromotion]:
        """All OrderPromotion rows for an order."""
        self.query_count += 1
        self._ensure_order_promotions_loaded()
        return [op for op in self._order_promotions if op.order_id == order_id]

    def get_promotion(self, promotion_id: str) -> Optional[Promotion]:
        self.query_count += 1
        self._ensure_promotions_loaded()
        return self._promotions.get(promotion_id)

    def get_promotions(self) -> list[Promotion]:
        self.query_count += 1
        self._ensure_promotions_loaded()
        return list(self._promotions.values())

    def connect_promotion(
        self,
        order_id: str,
        promotion_id: str,
        promotion_code: Optional[str] = None,
    ) -> OrderPromotion:
        """
        Connect a promotion to an order.

        Idempotent: an existing row is returned as is, except that a code is
        recorded on a row that didn't have one yet.
        """
        self._ensure_order_promotions_loaded()
        for i, op in enumerate(self._order_promotions):
            if op.order_id == order_id and op.promotion_id == promotion_id:
                if promotion_code and not op.promotion_code:
                    op = op.model_copy(update={"promotion_code": promotion_code})
                    self._order_promotions[i] = op
                return op

        op = OrderPromotion(
            order_id=order_id,
            promotion_id=promotion_id,
            promotion_code=promotion_code,
        )
        self._order_promotions.append(op)
        logger.info(f"Connected promotion {promotion_id} to order {order_id}")
        return op

    # =========================================================================
    # Catalog Operations
    # =========================================================================

    def get_product(self, product_id: str) -> Optional[Product]:
        self.query_count += 1
        self._ensure_products_loaded()
        return self._products.get(product_id)

    def get_products(self) -> list[Product]:
        self.query_count += 1
        self._ensure_products_loaded()
        return list(self._products.values())

    def taxon_ids_for_products(self, product_ids: Iterable[str]) -> set[str]:
        """Distinct taxons of the given products, in one read."""
        self.query_count += 1
        self._ensure_products_loaded()
        taxon_ids: set[str] = set()
        for product_id in product_ids:
            product = self._products.get(product_id)
            if product:
                taxon_ids |= product.taxon_ids
        return taxon_ids

    # =========================================================================
    # Order Operations
    # =========================================================================

    def get_order(self, order_id: str) -> Optional[Order]:
        self.query_count += 1
        self._ensure_orders_loaded()
        return self._orders.get(order_id)

    def get_orders(self) -> list[Order]:
        self.query_count += 1
        self._ensure_orders_loaded()
        return list(self._orders.values())

    def add_line_item(self, order_id: str, product_id: str, quantity: int = 1) -> Optional[LineItem]:
        """
        Add a product to an order (in-memory only) and recalculate its item total.

        Returns the new line item, or None if the order or product is unknown.
        """
        self._ensure_orders_loaded()
        order = self._orders.get(order_id)
        product = self.get_product(product_id)
        if not order or not product:
            return None

        line_item = LineItem(
            id=f"li-{uuid4().hex[:8]}",
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            price=product.price,
        )
        updated = order.model_copy(update={"line_items": order.line_items + [line_item]})
        updated.recalculate_item_total()
        self._orders[order_id] = updated
        return line_item

    def set_item_total(self, order_id: str, item_total: float) -> Optional[Order]:
        """Overwrite an order's item total (in-memory only)."""
        self._ensure_orders_loaded()
        order = self._orders.get(order_id)
        if not order:
            return None
        updated = order.model_copy(update={"item_total": item_total})
        self._orders[order_id] = updated
        return updated

    # =========================================================================
    # Adjustment Operations
    # =========================================================================

    def find_adjustment(
        self,
        promotion_id: str,
        adjustable_type: AdjustableType,
        adjustable_id: str,
    ) -> Optional[Adjustment]:
        for adjustment in self._adjustments:
            if (
                adjustment.promotion_id == promotion_id
                and adjustment.adjustable_type == adjustable_type
                and adjustment.adjustable_id == adjustable_id
            ):
                return adjustment
        return None

    def add_adjustment(self, adjustment: Adjustment) -> Adjustment:
        self._adjustments.append(adjustment)
        return adjustment

    def get_adjustments(self, order_id: str) -> list[Adjustment]:
        return [a for a in self._adjustments if a.order_id == order_id]

    def count_orders_using_promotion(self, promotion_id: str, exclude_order_id: Optional[str] = None) -> int:
        """Number of distinct orders already discounted by a promotion."""
        return len({
            a.order_id for a in self._adjustments
            if a.promotion_id == promotion_id and a.order_id != exclude_order_id
        })

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """
        Force reload all data from JSON files.

        Drops in-memory writes (line items, connections, adjustments).
        """
        self._products = None
        self._orders = None
        self._promotions = None
        self._order_promotions = None
        self._adjustments = []
        self.query_count = 0


# Module-level singleton for convenience
# In tests, create a new PromotionStore instance with test fixtures
_default_store: Optional[PromotionStore] = None


def get_promotion_store() -> PromotionStore:
    """Get the default promotion store singleton."""
    global _default_store
    if _default_store is None:
        from shared.config import get_settings
        _default_store = PromotionStore(data_dir=get_settings().data_dir)
    return _default_store


def reset_promotion_store(store: Optional[PromotionStore] = None) -> Optional[PromotionStore]:
    """Replace the default store (useful for testing)."""
    global _default_store
    _default_store = store
    return _default_store
