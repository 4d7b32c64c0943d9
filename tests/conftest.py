"""
Shared pytest fixtures for the cart promotion handler tests.

Two kinds of stores are available:
- ``promotion_store``: a fresh store over the JSON fixtures in data/
- ``make_store``: writes hand-built fixtures to tmp_path, so a test can set
  up exactly the promotions and orders it's about
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

import pytest

from shared.data_store import PromotionStore
from shared.models import LineItem, Order, Promotion
from promotion_handler.cart import CartPromotionHandler
from promotion_handler.exclusions import ExclusionRegistry
from promotions import PromotionActivator, PromotionEligibility


@pytest.fixture
def data_dir() -> Path:
    """Path to the fixture data directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def promotion_store(data_dir: Path) -> PromotionStore:
    """
    Fresh PromotionStore for each test.

    Uses the real JSON fixtures but creates a new instance
    so tests don't interfere with each other.
    """
    return PromotionStore(data_dir=data_dir)


# =============================================================================
# Hand-built fixtures
# =============================================================================

DEFAULT_PRODUCTS = [
    {"id": "prod-x", "name": "Product X", "price": 20.0, "taxon_ids": ["tax-a"]},
    {"id": "prod-y", "name": "Product Y", "price": 30.0, "taxon_ids": ["tax-b"]},
    {"id": "prod-z", "name": "Product Z", "price": 5.0, "taxon_ids": []},
]


def order_record(
    order_id: str = "ord-1",
    user_id: Optional[str] = "usr-u",
    store_id: str = "store-1",
    product_ids: tuple[str, ...] = ("prod-x",),
    item_total: Optional[float] = None,
) -> dict[str, Any]:
    prices = {p["id"]: p["price"] for p in DEFAULT_PRODUCTS}
    line_items = [
        {"id": f"{order_id}-li-{i}", "product_id": pid, "quantity": 1, "price": prices.get(pid, 10.0)}
        for i, pid in enumerate(product_ids, start=1)
    ]
    if item_total is None:
        item_total = round(sum(li["price"] for li in line_items), 2)
    return {
        "id": order_id,
        "user_id": user_id,
        "store_id": store_id,
        "line_items": line_items,
        "item_total": item_total,
    }


def promotion_record(
    promotion_id: str,
    *rules: dict[str, Any],
    apply_automatically: bool = True,
    actions: Optional[list[dict[str, Any]]] = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "id": promotion_id,
        "name": promotion_id.replace("-", " ").title(),
        "apply_automatically": apply_automatically,
        "rules": list(rules),
        "actions": actions if actions is not None else [{"type": "create_adjustment", "percent": 10}],
        **extra,
    }


@pytest.fixture
def order_factory():
    """Build an order record: ``order_factory(product_ids=("prod-y",))``."""
    return order_record


@pytest.fixture
def promotion_factory():
    """Build a promotion record: ``promotion_factory("p1", {"kind": "user", "user_ids": ["u"]})``."""
    return promotion_record


@pytest.fixture
def make_store(tmp_path: Path):
    """
    Write fixtures to tmp_path and return a store over them.

    Products default to prod-x (tax-a), prod-y (tax-b), prod-z (no taxons);
    orders default to a single ord-1 (usr-u, store-1, prod-x).
    """
    def _make(
        promotions: Optional[list[dict]] = None,
        orders: Optional[list[dict]] = None,
        order_promotions: Optional[list[dict]] = None,
        products: Optional[list[dict]] = None,
    ) -> PromotionStore:
        files = {
            "products.json": products if products is not None else DEFAULT_PRODUCTS,
            "orders.json": orders if orders is not None else [order_record()],
            "promotions.json": promotions or [],
            "order_promotions.json": order_promotions or [],
        }
        for filename, records in files.items():
            (tmp_path / filename).write_text(json.dumps(records))
        return PromotionStore(data_dir=tmp_path)
    return _make


@pytest.fixture
def make_handler():
    """Handler wired with the reference eligibility and activation collaborators."""
    def _make(store: PromotionStore, exclusions: Optional[ExclusionRegistry] = None) -> CartPromotionHandler:
        return CartPromotionHandler(
            store=store,
            eligibility=PromotionEligibility(store),
            activator=PromotionActivator(store),
            exclusions=exclusions,
        )
    return _make


# =============================================================================
# Recording collaborators
# =============================================================================

class RecordingEligibility:
    """
    Eligibility stub: answers from ``answers`` keyed by (promotion_id, level)
    and records every call as (promotion_id, level, code).
    """

    def __init__(self, answers: Optional[dict[tuple[str, str], bool]] = None, default: bool = False):
        self.answers = answers or {}
        self.default = default
        self.calls: list[tuple[str, str, Optional[str]]] = []

    def eligible(self, promotion: Promotion, subject: Union[Order, LineItem], promotion_code=None) -> bool:
        level = "line_item" if isinstance(subject, LineItem) else "order"
        self.calls.append((promotion.id, level, promotion_code))
        return self.answers.get((promotion.id, level), self.default)


class RecordingActivator:
    """Activator stub that records (promotion_id, line_item_id or None, order_id, code)."""

    def __init__(self):
        self.calls: list[tuple[str, Optional[str], str, Optional[str]]] = []

    def activate(self, promotion: Promotion, line_item: Optional[LineItem], order: Order, promotion_code=None) -> None:
        self.calls.append((promotion.id, line_item.id if line_item else None, order.id, promotion_code))


@pytest.fixture
def recording_eligibility():
    return RecordingEligibility


@pytest.fixture
def recording_activator() -> RecordingActivator:
    return RecordingActivator()
