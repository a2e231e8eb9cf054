"""Tests for lockstep.commands — preconditions, transitions and dispatch.

Covers:
    precondition       — the five-variant legality table
    transition         — model after each command
    resolve_reduction  — selector/amount resolution; amount always in [1, q]
    perform            — service dispatch; basket-side resolution
    Scenario           — add, fully reduce, address still allowed, order blocked
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lockstep.basket import (
    BasketService,
    Empty,
    Item,
    Order,
    WithAddress,
    WithItems,
    WithPaymentDetails,
)
from lockstep.commands import (
    AddAddress,
    AddItem,
    AddPaymentDetails,
    CommandKind,
    CreateOrder,
    ReduceItem,
    kind_of,
    perform,
    precondition,
    resolve_reduction,
    transition,
)
from lockstep.exceptions import MalformedAdapterCallError
from lockstep.model import Model

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ADDRESS = "TwentyLetterAddressX"
CARD = "1234567812345678"


def _item(sku: str, quantity: int = 1) -> Item:
    return Item(sku=sku, price_per_unit=Decimal("3.00"), quantity=quantity)


EMPTY = Model()
WITH_ITEMS = Model(items={"A": 2}, ever_had_item=True)
EMPTIED = Model(items={}, ever_had_item=True)
ADDRESSED = Model(items={"A": 2}, has_address=True, ever_had_item=True)
ADDRESSED_EMPTIED = Model(items={}, has_address=True, ever_had_item=True)
PAID = Model(
    items={"A": 2}, has_address=True, has_payment_details=True, ever_had_item=True
)
PAID_EMPTIED = Model(
    items={}, has_address=True, has_payment_details=True, ever_had_item=True
)

st_tally = st.dictionaries(
    st.text(alphabet="ABCDEF", min_size=1, max_size=3),
    st.integers(min_value=1, max_value=6),
    min_size=1,
    max_size=5,
)


# ---------------------------------------------------------------------------
# precondition
# ---------------------------------------------------------------------------


class TestPrecondition:
    @pytest.mark.parametrize(
        "model", [EMPTY, WITH_ITEMS, EMPTIED, ADDRESSED, PAID, PAID_EMPTIED]
    )
    def test_add_item_always_allowed(self, model: Model) -> None:
        assert precondition(AddItem(_item("Z")), model)

    @pytest.mark.parametrize(
        ("model", "expected"),
        [(EMPTY, False), (WITH_ITEMS, True), (EMPTIED, False), (PAID, True)],
    )
    def test_reduce_item_needs_items(self, model: Model, expected: bool) -> None:
        assert precondition(ReduceItem(0, 0), model) is expected

    @pytest.mark.parametrize(
        ("model", "expected"),
        [(EMPTY, False), (WITH_ITEMS, True), (EMPTIED, True)],
    )
    def test_add_address_needs_ever_had_item(self, model: Model, expected: bool) -> None:
        assert precondition(AddAddress(ADDRESS), model) is expected

    @pytest.mark.parametrize(
        ("model", "expected"),
        [(WITH_ITEMS, False), (ADDRESSED, True), (ADDRESSED_EMPTIED, True)],
    )
    def test_add_payment_details_needs_address(
        self, model: Model, expected: bool
    ) -> None:
        assert precondition(AddPaymentDetails(CARD), model) is expected

    @pytest.mark.parametrize(
        ("model", "expected"),
        [(ADDRESSED, False), (PAID, True), (PAID_EMPTIED, False)],
    )
    def test_create_order_needs_payment_and_items(
        self, model: Model, expected: bool
    ) -> None:
        assert precondition(CreateOrder(), model) is expected


# ---------------------------------------------------------------------------
# transition
# ---------------------------------------------------------------------------


class TestTransition:
    def test_add_item(self) -> None:
        m = transition(AddItem(_item("A", 3)), EMPTY)
        assert dict(m.items) == {"A": 3}
        assert m.ever_had_item

    def test_reduce_item_resolves_against_model(self) -> None:
        # one SKU, quantity 2: amount 0 resolves to 0 % 2 + 1 == 1
        m = transition(ReduceItem(selector=7, amount=0), WITH_ITEMS)
        assert dict(m.items) == {"A": 1}

    def test_add_address(self) -> None:
        assert transition(AddAddress(ADDRESS), WITH_ITEMS).has_address

    def test_add_payment_details(self) -> None:
        assert transition(AddPaymentDetails(CARD), ADDRESSED).has_payment_details

    def test_create_order_only_sets_order_created(self) -> None:
        m = transition(CreateOrder(), PAID)
        assert m.order_created
        assert dict(m.items) == dict(PAID.items)
        assert m.has_address and m.has_payment_details

    def test_transition_leaves_input_untouched(self) -> None:
        before = WITH_ITEMS
        transition(ReduceItem(0, 1), before)
        assert dict(before.items) == {"A": 2}


# ---------------------------------------------------------------------------
# resolve_reduction
# ---------------------------------------------------------------------------


class TestResolveReduction:
    def test_selector_indexes_sorted_skus(self) -> None:
        tally = {"C": 1, "A": 1, "B": 1}
        assert resolve_reduction(ReduceItem(0, 0), tally)[0] == "A"
        assert resolve_reduction(ReduceItem(1, 0), tally)[0] == "B"
        assert resolve_reduction(ReduceItem(2, 0), tally)[0] == "C"

    def test_selector_wraps_modulo_sku_count(self) -> None:
        tally = {"A": 1, "B": 1}
        assert resolve_reduction(ReduceItem(5, 0), tally)[0] == "B"

    def test_amount_is_modulo_quantity_plus_one(self) -> None:
        assert resolve_reduction(ReduceItem(0, 0), {"A": 3}) == ("A", 1)
        assert resolve_reduction(ReduceItem(0, 2), {"A": 3}) == ("A", 3)
        assert resolve_reduction(ReduceItem(0, 3), {"A": 3}) == ("A", 1)

    def test_insertion_order_is_irrelevant(self) -> None:
        cmd = ReduceItem(1, 4)
        assert resolve_reduction(cmd, {"A": 2, "B": 5}) == resolve_reduction(
            cmd, {"B": 5, "A": 2}
        )

    @given(
        st_tally,
        st.integers(min_value=0, max_value=200),
        st.integers(min_value=0, max_value=200),
    )
    def test_resolved_amount_within_quantity(
        self, tally: dict[str, int], selector: int, amount: int
    ) -> None:
        sku, resolved = resolve_reduction(ReduceItem(selector, amount), tally)
        assert sku in tally
        assert 1 <= resolved <= tally[sku]


# ---------------------------------------------------------------------------
# kind_of / perform
# ---------------------------------------------------------------------------


class TestKindOf:
    @pytest.mark.parametrize(
        ("command", "kind"),
        [
            (AddItem(_item("A")), CommandKind.ADD_ITEM),
            (ReduceItem(0, 0), CommandKind.REDUCE_ITEM),
            (AddAddress(ADDRESS), CommandKind.ADD_ADDRESS),
            (AddPaymentDetails(CARD), CommandKind.ADD_PAYMENT_DETAILS),
            (CreateOrder(), CommandKind.CREATE_ORDER),
        ],
    )
    def test_kind_of(self, command: object, kind: CommandKind) -> None:
        assert kind_of(command) is kind  # type: ignore[arg-type]


class TestPerform:
    def test_full_checkout_walks_every_phase(self, service: BasketService) -> None:
        basket = perform(AddItem(_item("A", 2)), service, Empty())
        assert type(basket) is WithItems
        basket = perform(AddAddress(ADDRESS), service, basket)
        assert type(basket) is WithAddress
        basket = perform(AddPaymentDetails(CARD), service, basket)
        assert type(basket) is WithPaymentDetails
        basket = perform(CreateOrder(), service, basket)
        assert type(basket) is Order

    def test_reduce_item_resolves_against_basket(self, service: BasketService) -> None:
        basket = WithItems(items=(_item("B", 4), _item("A", 3)))
        # sorted SKUs: A, B -> selector 1 is B; amount 1 % 4 + 1 == 2
        result = perform(ReduceItem(selector=1, amount=1), service, basket)
        assert {i.sku: i.quantity for i in result.items} == {"A": 3, "B": 2}

    def test_basket_and_model_resolve_the_same_line(
        self, service: BasketService
    ) -> None:
        basket = WithItems(items=(_item("B", 4), _item("A", 3)))
        model = Model(items={"A": 3, "B": 4}, ever_had_item=True)
        command = ReduceItem(selector=3, amount=11)
        after_basket = perform(command, service, basket)
        after_model = transition(command, model)
        assert {i.sku: i.quantity for i in after_basket.items} == dict(after_model.items)

    def test_reduce_item_on_empty_basket_is_malformed(
        self, service: BasketService
    ) -> None:
        with pytest.raises(MalformedAdapterCallError):
            perform(ReduceItem(0, 0), service, Empty())

    def test_address_on_empty_basket_is_malformed(self, service: BasketService) -> None:
        with pytest.raises(MalformedAdapterCallError):
            perform(AddAddress(ADDRESS), service, Empty())


# ---------------------------------------------------------------------------
# Scenario
# ---------------------------------------------------------------------------


class TestEverHadItemScenario:
    """Add A x3, reduce all of it, then continue through checkout."""

    def test_scenario(self) -> None:
        m = transition(AddItem(_item("A", 3)), Model())
        assert dict(m.items) == {"A": 3}
        assert m.ever_had_item

        reduce_all = ReduceItem(selector=0, amount=2)
        assert resolve_reduction(reduce_all, m.items) == ("A", 3)
        m = transition(reduce_all, m)
        assert dict(m.items) == {}
        assert m.ever_had_item

        assert precondition(AddAddress("X"), m)
        m = transition(AddAddress("X"), m)
        assert m.has_address

        m = transition(AddPaymentDetails(CARD), m)
        assert m.has_payment_details
        assert not precondition(CreateOrder(), m)
