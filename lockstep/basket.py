"""Checkout basket — the worked-example subject under test.

A basket moves through five phases::

    Empty → WithItems → WithAddress → WithPaymentDetails → Order

Each phase is its own frozen dataclass and every data-carrying phase
subclasses the previous one, so ``isinstance(basket, WithAddress)`` reads
as "the basket has reached at least the WithAddress phase".  There is no
flat record with optional fields: a phase-mismatched basket cannot be
constructed.

``BasketService`` is the SUT adapter surface.  Its operations are pure
functions of (basket, parameters) and fail loudly with
``MalformedAdapterCallError`` when handed a basket in a phase they do not
accept.  ``BasketDefect`` switches on the two defects the harness is
demonstrated against.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, ClassVar

from lockstep.exceptions import MalformedAdapterCallError

if TYPE_CHECKING:
    from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Items and phases
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Item:
    """One basket line: a SKU, its unit price and a quantity."""

    sku: str
    price_per_unit: Decimal
    quantity: int


class BasketPhase(IntEnum):
    """Ordered phase tags; a higher value refines every lower one."""

    EMPTY = 0
    WITH_ITEMS = 1
    WITH_ADDRESS = 2
    WITH_PAYMENT_DETAILS = 3
    ORDER = 4


@dataclass(slots=True, frozen=True)
class Empty:
    """A basket nothing has been added to."""

    phase: ClassVar[BasketPhase] = BasketPhase.EMPTY


@dataclass(slots=True, frozen=True)
class WithItems:
    """A basket that has had at least one item added."""

    phase: ClassVar[BasketPhase] = BasketPhase.WITH_ITEMS

    items: tuple[Item, ...]


@dataclass(slots=True, frozen=True)
class WithAddress(WithItems):
    phase: ClassVar[BasketPhase] = BasketPhase.WITH_ADDRESS

    address: str


@dataclass(slots=True, frozen=True)
class WithPaymentDetails(WithAddress):
    phase: ClassVar[BasketPhase] = BasketPhase.WITH_PAYMENT_DETAILS

    payment_details: str


@dataclass(slots=True, frozen=True)
class Order(WithPaymentDetails):
    """A placed order.  Terminal: no operation accepts it."""

    phase: ClassVar[BasketPhase] = BasketPhase.ORDER


Basket = Empty | WithItems


def item_tally(items: Iterable[Item]) -> dict[str, int]:
    """Return the per-SKU quantity totals of *items*."""
    tally: dict[str, int] = {}
    for item in items:
        tally[item.sku] = tally.get(item.sku, 0) + item.quantity
    return tally


def basket_tally(basket: Basket) -> dict[str, int]:
    """Per-SKU quantities carried by *basket*; empty for an ``Empty`` basket."""
    if isinstance(basket, WithItems):
        return item_tally(basket.items)
    return {}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BasketDefect(StrEnum):
    """Defects that can be seeded into ``BasketService``."""

    KEEP_EMPTY_LINES = "KEEP_EMPTY_LINES"
    """Reducing a line to zero leaves a zero-quantity line in the basket."""

    RESET_ON_READDRESS = "RESET_ON_READDRESS"
    """Adding an address always rebuilds a bare ``WithAddress`` basket,
    discarding payment details captured earlier."""


def _require(
    basket: Basket,
    phase_type: type[WithItems],
    operation: str,
) -> None:
    if isinstance(basket, Order) or not isinstance(basket, phase_type):
        raise MalformedAdapterCallError(
            operation,
            phase=basket.phase.name,
            expected=f"a phase from {phase_type.phase.name} up to, not including, ORDER",
        )


class BasketService:
    """Basket operations driven by the harness.

    Parameters
    ----------
    defects:
        Seeded defects to enable.  The default service is defect-free.
    """

    __slots__ = ("_defects",)

    def __init__(self, defects: Iterable[BasketDefect] = ()) -> None:
        self._defects: frozenset[BasketDefect] = frozenset(defects)

    @property
    def defects(self) -> frozenset[BasketDefect]:
        return self._defects

    def add_item(self, basket: Basket, item: Item) -> WithItems:
        """Add *item*, merging its quantity into an existing line for the SKU."""
        if isinstance(basket, Order):
            raise MalformedAdapterCallError(
                "add_item", phase=basket.phase.name, expected="any phase before ORDER"
            )
        if isinstance(basket, Empty):
            return WithItems(items=(item,))
        return dataclasses.replace(basket, items=_merge_item(basket.items, item))

    def reduce_item(self, basket: Basket, sku: str, amount: int) -> WithItems:
        """Take *amount* units of *sku* out of the basket.

        A line whose quantity reaches zero is removed.  An unknown SKU
        leaves the basket unchanged.
        """
        _require(basket, WithItems, "reduce_item")
        lines = list(basket.items)
        for index, line in enumerate(lines):
            if line.sku == sku:
                del lines[index]
                remaining = line.quantity - amount
                if remaining > 0 or BasketDefect.KEEP_EMPTY_LINES in self._defects:
                    lines.append(dataclasses.replace(line, quantity=remaining))
                break
        return dataclasses.replace(basket, items=tuple(lines))

    def add_address(self, basket: Basket, address: str) -> WithAddress:
        """Set the delivery address.

        Re-addressing keeps the basket's phase, so payment details survive.
        """
        _require(basket, WithItems, "add_address")
        if isinstance(basket, WithAddress) and (
            BasketDefect.RESET_ON_READDRESS not in self._defects
        ):
            return dataclasses.replace(basket, address=address)
        return WithAddress(items=basket.items, address=address)

    def add_payment_details(
        self, basket: Basket, payment_details: str
    ) -> WithPaymentDetails:
        _require(basket, WithAddress, "add_payment_details")
        return WithPaymentDetails(
            items=basket.items,
            address=basket.address,
            payment_details=payment_details,
        )

    def make_order(self, basket: Basket) -> Order:
        _require(basket, WithPaymentDetails, "make_order")
        return Order(
            items=basket.items,
            address=basket.address,
            payment_details=basket.payment_details,
        )

    def __repr__(self) -> str:
        defects = sorted(d.value for d in self._defects)
        return f"BasketService(defects={defects!r})"


def _merge_item(lines: tuple[Item, ...], item: Item) -> tuple[Item, ...]:
    merged = list(lines)
    for index, line in enumerate(merged):
        if line.sku == item.sku:
            del merged[index]
            merged.append(
                dataclasses.replace(item, quantity=item.quantity + line.quantity)
            )
            return tuple(merged)
    merged.append(item)
    return tuple(merged)
