"""Abstract basket model.

``Model`` is the lightweight shadow of a basket that the harness uses to
decide which commands are legal next and what the basket should look like
after each one.  Every operation returns a new ``Model``; nothing mutates
in place, so a model can be handed to the next step (or to another
thread's replay) without copying.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lockstep.basket import Item


def _empty_items() -> Mapping[str, int]:
    return MappingProxyType({})


@dataclass(slots=True, frozen=True)
class Model:
    """Immutable snapshot of the expected basket state.

    Attributes
    ----------
    items : Mapping[str, int]
        SKU → accumulated quantity.  Quantities are always ≥ 1; a SKU whose
        quantity drops to zero is removed.  Read-only.
    has_address, has_payment_details, order_created : bool
        Checkout progress.  ``order_created ⟹ has_payment_details ⟹
        has_address``.
    ever_had_item : bool
        Sticky: set by the first ``add_item`` and never cleared, even when
        every item is later reduced away.
    """

    items: Mapping[str, int] = field(default_factory=_empty_items)
    has_address: bool = False
    has_payment_details: bool = False
    order_created: bool = False
    ever_had_item: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.items, MappingProxyType):
            object.__setattr__(self, "items", MappingProxyType(dict(self.items)))

    def __hash__(self) -> int:
        return hash(
            (
                frozenset(self.items.items()),
                self.has_address,
                self.has_payment_details,
                self.order_created,
                self.ever_had_item,
            )
        )

    def add_item(self, item: Item) -> Model:
        items = dict(self.items)
        items[item.sku] = items.get(item.sku, 0) + item.quantity
        return dataclasses.replace(self, items=items, ever_had_item=True)

    def reduce_item(self, sku: str, amount: int) -> Model:
        """Subtract *amount* from *sku*, dropping the SKU at or below zero.

        *sku* must be present; the ReduceItem precondition guarantees it.
        """
        items = dict(self.items)
        remaining = items.pop(sku) - amount
        if remaining > 0:
            items[sku] = remaining
        return dataclasses.replace(self, items=items)

    def with_address(self) -> Model:
        return dataclasses.replace(self, has_address=True)

    def with_payment_details(self) -> Model:
        return dataclasses.replace(self, has_payment_details=True)

    def with_order(self) -> Model:
        return dataclasses.replace(self, order_created=True)

    @property
    def has_items(self) -> bool:
        return bool(self.items)

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form used when rendering traces."""
        return {
            "items": dict(sorted(self.items.items())),
            "has_address": self.has_address,
            "has_payment_details": self.has_payment_details,
            "order_created": self.order_created,
            "ever_had_item": self.ever_had_item,
        }

    def __repr__(self) -> str:
        return (
            f"Model(items={dict(self.items)!r}, "
            f"has_address={self.has_address}, "
            f"has_payment_details={self.has_payment_details}, "
            f"order_created={self.order_created}, "
            f"ever_had_item={self.ever_had_item})"
        )
