"""Tests for lockstep.model — the immutable abstract basket model.

Covers:
    add_item      — insert / accumulate; sets ever_had_item
    reduce_item   — partial keeps the key, full (or more) removes it
    flag helpers  — with_address / with_payment_details / with_order
    immutability  — operations return new models; items are read-only
    Property      — Hypothesis: reduce keeps the key iff amount < quantity;
                    ever_had_item survives any number of reductions
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lockstep.basket import Item
from lockstep.model import Model


def _item(sku: str, quantity: int) -> Item:
    return Item(sku=sku, price_per_unit=Decimal("1.50"), quantity=quantity)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestInitialModel:
    def test_default_model_is_empty(self) -> None:
        m = Model()
        assert dict(m.items) == {}
        assert not m.has_address
        assert not m.has_payment_details
        assert not m.order_created
        assert not m.ever_had_item

    def test_has_items_false_when_empty(self) -> None:
        assert Model().has_items is False

    def test_plain_dict_is_accepted_and_compared_by_value(self) -> None:
        assert Model(items={"A": 2}) == Model(items={"A": 2})
        assert Model(items={"A": 2}) != Model(items={"A": 3})

    def test_items_are_read_only(self) -> None:
        m = Model(items={"A": 2})
        with pytest.raises(TypeError):
            m.items["A"] = 5  # type: ignore[index]

    def test_constructor_copies_the_mapping(self) -> None:
        source = {"A": 1}
        m = Model(items=source)
        source["A"] = 99
        assert m.items["A"] == 1

    def test_equal_models_hash_equal(self) -> None:
        a = Model(items={"A": 2, "B": 1}, ever_had_item=True)
        b = Model(items={"B": 1, "A": 2}, ever_had_item=True)
        assert hash(a) == hash(b)
        assert len({a, b, Model()}) == 2

    def test_hash_follows_items_and_flags(self) -> None:
        base = Model(items={"A": 2})
        assert len({base, Model(items={"A": 3}), base.with_address()}) == 3


# ---------------------------------------------------------------------------
# add_item / reduce_item
# ---------------------------------------------------------------------------


class TestAddItem:
    def test_inserts_new_sku(self) -> None:
        m = Model().add_item(_item("A", 3))
        assert dict(m.items) == {"A": 3}

    def test_accumulates_existing_sku(self) -> None:
        m = Model().add_item(_item("A", 3)).add_item(_item("A", 2))
        assert dict(m.items) == {"A": 5}

    def test_sets_ever_had_item(self) -> None:
        assert Model().add_item(_item("A", 1)).ever_had_item

    def test_does_not_touch_flags(self) -> None:
        m = Model().with_address().add_item(_item("A", 1))
        assert m.has_address
        assert not m.has_payment_details

    def test_returns_new_model(self) -> None:
        original = Model()
        updated = original.add_item(_item("A", 1))
        assert updated is not original
        assert dict(original.items) == {}
        assert not original.ever_had_item


class TestReduceItem:
    def test_partial_reduction_keeps_key(self) -> None:
        m = Model().add_item(_item("A", 3)).reduce_item("A", 2)
        assert dict(m.items) == {"A": 1}

    def test_full_reduction_removes_key(self) -> None:
        m = Model().add_item(_item("A", 3)).reduce_item("A", 3)
        assert "A" not in m.items
        assert dict(m.items) == {}

    def test_over_reduction_removes_key(self) -> None:
        m = Model().add_item(_item("A", 2)).reduce_item("A", 5)
        assert dict(m.items) == {}

    def test_other_skus_untouched(self) -> None:
        m = (
            Model()
            .add_item(_item("A", 2))
            .add_item(_item("B", 4))
            .reduce_item("A", 2)
        )
        assert dict(m.items) == {"B": 4}

    def test_ever_had_item_survives_full_reduction(self) -> None:
        m = Model().add_item(_item("A", 1)).reduce_item("A", 1)
        assert dict(m.items) == {}
        assert m.ever_had_item

    def test_unknown_sku_is_a_caller_error(self) -> None:
        with pytest.raises(KeyError):
            Model().reduce_item("missing", 1)


# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------


class TestFlags:
    def test_with_address(self) -> None:
        assert Model().with_address().has_address

    def test_with_payment_details(self) -> None:
        m = Model().with_address().with_payment_details()
        assert m.has_address
        assert m.has_payment_details

    def test_with_order(self) -> None:
        m = Model().with_address().with_payment_details().with_order()
        assert m.order_created

    def test_flag_helpers_keep_items(self) -> None:
        m = Model().add_item(_item("A", 2)).with_address()
        assert dict(m.items) == {"A": 2}

    def test_to_dict_is_sorted_and_plain(self) -> None:
        m = Model().add_item(_item("B", 1)).add_item(_item("A", 2))
        d = m.to_dict()
        assert list(d["items"]) == ["A", "B"]
        assert d["ever_had_item"] is True
        assert d["order_created"] is False


# ---------------------------------------------------------------------------
# Properties (Hypothesis)
# ---------------------------------------------------------------------------


class TestModelProperties:
    @given(
        st.integers(min_value=1, max_value=6).flatmap(
            lambda q: st.tuples(st.just(q), st.integers(min_value=1, max_value=q))
        )
    )
    def test_reduce_keeps_key_iff_amount_below_quantity(
        self, pair: tuple[int, int]
    ) -> None:
        quantity, amount = pair
        m = Model().add_item(_item("A", quantity)).reduce_item("A", amount)
        if amount < quantity:
            assert dict(m.items) == {"A": quantity - amount}
        else:
            assert "A" not in m.items

    @given(st.lists(st.integers(min_value=1, max_value=6), min_size=1, max_size=10))
    def test_quantities_never_stored_as_zero_or_negative(
        self, amounts: list[int]
    ) -> None:
        m = Model().add_item(_item("A", 6))
        for amount in amounts:
            if "A" not in m.items:
                break
            m = m.reduce_item("A", amount)
            assert m.ever_had_item
            assert all(q > 0 for q in m.items.values())
