"""Journey commands: the closed set of operations a test can perform.

Five command variants form a tagged union (``Command``).  Three pure
functions dispatch over it with an exhaustive ``match``:

- ``precondition`` — may the command run against this model?
- ``transition``   — the model after the command.
- ``perform``      — run the command against the basket service.

Each ``match`` ends in ``assert_never`` so that adding a sixth variant is
reported by the type checker at every dispatch site.

``ReduceItem`` carries unresolved parameters.  ``resolve_reduction`` turns
them into a concrete (SKU, amount) pair against a quantity tally; the
model side resolves against ``Model.items`` and the basket side against
the basket's own lines, so both pick the same line whenever the previous
invariant check passed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, assert_never

from lockstep.basket import basket_tally
from lockstep.exceptions import MalformedAdapterCallError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from lockstep.basket import Basket, BasketService, Item
    from lockstep.model import Model

# ---------------------------------------------------------------------------
# Command variants
# ---------------------------------------------------------------------------


class CommandKind(StrEnum):
    """Names of the five command variants."""

    ADD_ITEM = "AddItem"
    REDUCE_ITEM = "ReduceItem"
    ADD_ADDRESS = "AddAddress"
    ADD_PAYMENT_DETAILS = "AddPaymentDetails"
    CREATE_ORDER = "CreateOrder"


@dataclass(slots=True, frozen=True)
class AddItem:
    item: Item


@dataclass(slots=True, frozen=True)
class ReduceItem:
    """Reduce one basket line.

    Attributes
    ----------
    selector : int
        Index into the sorted SKUs, taken modulo the number of SKUs when
        the command runs.
    amount : int
        Taken modulo the selected line's quantity, plus one, when the
        command runs; the reduction is always in ``[1, quantity]``.
    """

    selector: int
    amount: int


@dataclass(slots=True, frozen=True)
class AddAddress:
    address: str


@dataclass(slots=True, frozen=True)
class AddPaymentDetails:
    details: str


@dataclass(slots=True, frozen=True)
class CreateOrder:
    pass


Command = AddItem | ReduceItem | AddAddress | AddPaymentDetails | CreateOrder


def kind_of(command: Command) -> CommandKind:
    match command:
        case AddItem():
            return CommandKind.ADD_ITEM
        case ReduceItem():
            return CommandKind.REDUCE_ITEM
        case AddAddress():
            return CommandKind.ADD_ADDRESS
        case AddPaymentDetails():
            return CommandKind.ADD_PAYMENT_DETAILS
        case CreateOrder():
            return CommandKind.CREATE_ORDER
        case _:
            assert_never(command)


# ---------------------------------------------------------------------------
# Parameter resolution
# ---------------------------------------------------------------------------


def resolve_reduction(command: ReduceItem, tally: Mapping[str, int]) -> tuple[str, int]:
    """Resolve *command* against *tally* into a concrete ``(sku, amount)``.

    SKUs are ordered by name so the result does not depend on insertion
    order.  *tally* must be non-empty and the selected quantity positive.
    """
    skus = sorted(tally)
    sku = skus[command.selector % len(skus)]
    amount = command.amount % tally[sku] + 1
    return sku, amount


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def precondition(command: Command, model: Model) -> bool:
    """Return ``True`` iff *command* may run next against *model*."""
    match command:
        case AddItem():
            return True
        case ReduceItem():
            return model.has_items
        case AddAddress():
            return model.ever_had_item
        case AddPaymentDetails():
            return model.has_address
        case CreateOrder():
            return model.has_payment_details and model.has_items
        case _:
            assert_never(command)


def transition(command: Command, model: Model) -> Model:
    """Return the model after *command*.  Assumes the precondition holds."""
    match command:
        case AddItem(item=item):
            return model.add_item(item)
        case ReduceItem():
            sku, amount = resolve_reduction(command, model.items)
            return model.reduce_item(sku, amount)
        case AddAddress():
            return model.with_address()
        case AddPaymentDetails():
            return model.with_payment_details()
        case CreateOrder():
            return model.with_order()
        case _:
            assert_never(command)


def perform(command: Command, service: BasketService, basket: Basket) -> Basket:
    """Run *command* against *basket* through *service*.

    Only the basket is consulted; the model plays no part in what the
    service is asked to do.
    """
    match command:
        case AddItem(item=item):
            return service.add_item(basket, item)
        case ReduceItem():
            tally = basket_tally(basket)
            if not tally:
                raise MalformedAdapterCallError(
                    "reduce_item",
                    phase=basket.phase.name,
                    expected="a basket holding at least one line",
                )
            sku, amount = resolve_reduction(command, tally)
            return service.reduce_item(basket, sku, amount)
        case AddAddress(address=address):
            return service.add_address(basket, address)
        case AddPaymentDetails(details=details):
            return service.add_payment_details(basket, details)
        case CreateOrder():
            return service.make_order(basket)
        case _:
            assert_never(command)
