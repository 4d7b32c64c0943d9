"""
Tests for candidate selection.
"""

import pytest

from shared.errors import StorageError
from shared.data_store import PromotionStore
from promotion_handler.candidates import CandidateSelector


class TestCandidateSelector:

    def test_union_of_connected_and_automatic(self, make_store, promotion_factory):
        store = make_store(
            promotions=[
                promotion_factory("p-auto"),
                promotion_factory("p-code", apply_automatically=False, codes=["SAVE"]),
                promotion_factory("p-manual", apply_automatically=False),
            ],
            order_promotions=[{"order_id": "ord-1", "promotion_id": "p-code", "promotion_code": "SAVE"}],
        )
        selector = CandidateSelector(store)

        ids = {p.id for p in selector.select(store.get_order("ord-1"))}

        assert ids == {"p-auto", "p-code"}

    def test_connected_and_automatic_deduplicated(self, make_store, promotion_factory):
        store = make_store(
            promotions=[promotion_factory("p-both")],
            order_promotions=[{"order_id": "ord-1", "promotion_id": "p-both"}],
        )
        selector = CandidateSelector(store)

        result = selector.select(store.get_order("ord-1"))

        assert [p.id for p in result] == ["p-both"]

    def test_connected_bypasses_rule_filters(self, make_store, promotion_factory):
        """A connected promotion is a candidate even if its rules wouldn't pass the filters."""
        store = make_store(
            promotions=[promotion_factory(
                "p-other-store",
                {"kind": "store", "store_ids": ["store-2"]},
            )],
            order_promotions=[{"order_id": "ord-1", "promotion_id": "p-other-store"}],
        )
        selector = CandidateSelector(store)

        assert [p.id for p in selector.select(store.get_order("ord-1"))] == ["p-other-store"]
        assert selector.automatic(store.get_order("ord-1")) == []

    def test_inactive_connected_promotion_not_selected(self, make_store, promotion_factory):
        store = make_store(
            promotions=[
                promotion_factory("p-paused", active=False),
                promotion_factory("p-expired", expires_at="2001-01-01T00:00:00"),
            ],
            order_promotions=[
                {"order_id": "ord-1", "promotion_id": "p-paused"},
                {"order_id": "ord-1", "promotion_id": "p-expired"},
            ],
        )
        selector = CandidateSelector(store)

        assert selector.select(store.get_order("ord-1")) == []

    def test_connection_to_other_order_ignored(self, make_store, promotion_factory, order_factory):
        store = make_store(
            promotions=[promotion_factory("p-code", apply_automatically=False)],
            orders=[order_factory("ord-1"), order_factory("ord-2")],
            order_promotions=[{"order_id": "ord-2", "promotion_id": "p-code"}],
        )
        selector = CandidateSelector(store)

        assert selector.select(store.get_order("ord-1")) == []

    def test_storage_error_propagates(self, tmp_path):
        (tmp_path / "orders.json").write_text('[{"id": "ord-1", "store_id": "store-1"}]')
        (tmp_path / "promotions.json").write_text("{not json")
        store = PromotionStore(data_dir=tmp_path)
        selector = CandidateSelector(store)

        with pytest.raises(StorageError):
            selector.select(store.get_order("ord-1"))
