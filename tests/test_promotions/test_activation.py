"""
Tests for promotion activation.

These verify which adjustments each action creates and that activating the
same promotion again creates nothing new.
"""

import pytest

from shared.models import Promotion
from promotions.activation import PromotionActivator, flat_percent


@pytest.fixture
def store(make_store, order_factory):
    return make_store(orders=[order_factory("ord-1", product_ids=("prod-x", "prod-y"))])


@pytest.fixture
def activator(store) -> PromotionActivator:
    return PromotionActivator(store)


def make_promotion(*actions) -> Promotion:
    return Promotion(id="p1", name="Summer", actions=list(actions))


ITEM_ACTION = {"type": "create_item_adjustments", "percent": 10}
ORDER_ACTION = {"type": "create_adjustment", "percent": 5}


class TestFlatPercent:

    def test_rounds_to_cents(self):
        assert flat_percent(19.99, 15) == -3.0
        assert flat_percent(100, 0) == 0


class TestItemAdjustments:

    def test_adjusts_supplied_line_item_only(self, store, activator):
        order = store.get_order("ord-1")
        item_x = order.line_items[0]

        created = activator.activate(make_promotion(ITEM_ACTION), item_x, order)

        assert [(a.adjustable_type, a.adjustable_id, a.amount) for a in created] == [
            ("line_item", item_x.id, -2.0),
        ]

    def test_adjusts_every_line_item_without_line_item(self, store, activator):
        order = store.get_order("ord-1")

        created = activator.activate(make_promotion(ITEM_ACTION), None, order)

        assert sorted(a.amount for a in created) == [-3.0, -2.0]

    def test_label_and_code_recorded(self, store, activator):
        order = store.get_order("ord-1")

        created = activator.activate(make_promotion(ITEM_ACTION), order.line_items[0], order, "SUMMER")

        assert created[0].label == "Promotion (Summer)"
        assert created[0].promotion_code == "SUMMER"


class TestOrderAdjustment:

    def test_adjusts_order_item_total(self, store, activator):
        order = store.get_order("ord-1")

        created = activator.activate(make_promotion(ORDER_ACTION), None, order)

        assert [(a.adjustable_type, a.adjustable_id, a.amount) for a in created] == [("order", "ord-1", -2.5)]

    def test_order_action_ignores_line_item(self, store, activator):
        order = store.get_order("ord-1")

        created = activator.activate(make_promotion(ORDER_ACTION), order.line_items[0], order)

        assert [a.adjustable_type for a in created] == ["order"]


class TestIdempotence:

    def test_second_activation_creates_nothing(self, store, activator):
        order = store.get_order("ord-1")
        promotion = make_promotion(ITEM_ACTION, ORDER_ACTION)

        first = activator.activate(promotion, None, order)
        second = activator.activate(promotion, None, order)

        assert len(first) == 3
        assert second == []
        assert len(store.get_adjustments("ord-1")) == 3

    def test_line_item_then_whole_order(self, store, activator):
        """Adjusting one item first, then the order's items, only fills in the missing item."""
        order = store.get_order("ord-1")
        promotion = make_promotion(ITEM_ACTION)

        activator.activate(promotion, order.line_items[0], order)
        created = activator.activate(promotion, None, order)

        assert [a.adjustable_id for a in created] == [order.line_items[1].id]


class TestOrderConnection:

    def test_connects_promotion_with_code(self, store, activator):
        order = store.get_order("ord-1")

        activator.activate(make_promotion(ORDER_ACTION), None, order, "SUMMER")

        connections = store.get_order_promotions("ord-1")
        assert [(c.promotion_id, c.promotion_code) for c in connections] == [("p1", "SUMMER")]

    def test_no_actions_no_connection(self, store, activator):
        activator.activate(make_promotion(), None, store.get_order("ord-1"))

        assert store.get_order_promotions("ord-1") == []

    def test_repeat_activation_keeps_single_connection(self, store, activator):
        order = store.get_order("ord-1")
        promotion = make_promotion(ORDER_ACTION)

        activator.activate(promotion, None, order)
        activator.activate(promotion, None, order)

        assert len(store.get_order_promotions("ord-1")) == 1


class TestActionableItems:

    def test_whole_order_adjusts_only_matching_products(self, store, activator):
        order = store.get_order("ord-1")
        promotion = Promotion(
            id="p1",
            name="Summer",
            rules=[{"kind": "product", "product_ids": ["prod-y"]}],
            actions=[ITEM_ACTION],
        )

        created = activator.activate(promotion, None, order)

        assert [a.adjustable_id for a in created] == [order.line_items[1].id]

    def test_whole_order_adjusts_only_matching_taxons(self, store, activator):
        order = store.get_order("ord-1")
        promotion = Promotion(
            id="p1",
            name="Summer",
            rules=[{"kind": "taxon", "taxon_ids": ["tax-a"]}],
            actions=[ITEM_ACTION],
        )

        created = activator.activate(promotion, None, order)

        assert [a.adjustable_id for a in created] == [order.line_items[0].id]

    def test_supplied_line_item_outside_product_rules(self, store, activator):
        """A user-rule match under ``any`` doesn't discount an item the product rules don't cover."""
        order = store.get_order("ord-1")
        promotion = Promotion(
            id="p1",
            name="Summer",
            match_policy="any",
            rules=[
                {"kind": "user", "user_ids": ["usr-u"]},
                {"kind": "product", "product_ids": ["prod-x"]},
            ],
            actions=[ITEM_ACTION],
        )

        assert activator.activate(promotion, order.line_items[1], order) == []
        assert [a.adjustable_id for a in activator.activate(promotion, order.line_items[0], order)] == [
            order.line_items[0].id,
        ]
        assert store.get_order_promotions("ord-1")[0].promotion_id == "p1"
