"""Journey generation.

Two generators produce journeys for replay:

- **Unconstrained** (``random_journeys``) — a flat list of commands drawn
  without looking at any model.  Invalid commands are mixed in and are
  skipped by the engine at replay time.
- **Valid by construction** (``build_valid_journey`` / ``valid_journeys``)
  — each command is drawn only from the variants the current model
  allows, and the model is advanced with ``transition`` before the next
  draw.  Every step's precondition holds by construction.

All strategies come from factory functions taking a ``HarnessSettings``;
nothing is held in module-level generator instances.

The valid-by-construction journey is a lazy ``Journey`` chain: each tail is
drawn only when first consumed, so a replay that stops at the order
terminal never pays for steps it does not reach.  Drawing lazily needs a
draw function that stays live while the test runs (``st.data()``);
``valid_journeys`` materialises the chain inside a composite strategy for
use with a plain ``@given``.

Shrinking: Hypothesis shrinks the choice sequence and re-runs the draws,
so after any shrink the remaining steps are re-derived against the
evolving model and stay valid.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, assert_never

from hypothesis import strategies as st

from lockstep.basket import Item
from lockstep.commands import (
    AddAddress,
    AddItem,
    AddPaymentDetails,
    CommandKind,
    CreateOrder,
    ReduceItem,
    transition,
)
from lockstep.config import HarnessSettings
from lockstep.model import Model

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from lockstep.commands import Command

    Draw = Callable[[st.SearchStrategy[Any]], Any]

SKU_ALPHABET = string.ascii_letters + string.digits
SKU_LENGTH = 8
MIN_PRICE = Decimal("0.5")
MAX_PRICE = Decimal("230")
MIN_QUANTITY = 1
MAX_QUANTITY = 6
ADDRESS_MIN_LENGTH = 20
ADDRESS_MAX_LENGTH = 25
PAYMENT_DETAILS_LENGTH = 16

# ---------------------------------------------------------------------------
# Per-command strategies
# ---------------------------------------------------------------------------


def _text_of(alphabet: str, min_size: int, max_size: int) -> st.SearchStrategy[str]:
    # Characters are drawn as alphabet indices, never as text choices: the
    # valid generator's branch set follows the model, so after a shrink one
    # command's characters can be replayed at another command's position.
    return st.lists(
        st.sampled_from(alphabet), min_size=min_size, max_size=max_size
    ).map("".join)


def item_strategy() -> st.SearchStrategy[Item]:
    return st.builds(
        Item,
        sku=_text_of(SKU_ALPHABET, SKU_LENGTH, SKU_LENGTH),
        price_per_unit=st.decimals(min_value=MIN_PRICE, max_value=MAX_PRICE, places=2),
        quantity=st.integers(min_value=MIN_QUANTITY, max_value=MAX_QUANTITY),
    )


def add_item_commands() -> st.SearchStrategy[AddItem]:
    return item_strategy().map(AddItem)


def reduce_item_commands(range_max: int = 200) -> st.SearchStrategy[ReduceItem]:
    """Unresolved ``ReduceItem`` commands; resolution happens at replay time."""
    bound = st.integers(min_value=0, max_value=range_max)
    return st.tuples(bound, bound).map(lambda pair: ReduceItem(*pair))


def add_address_commands() -> st.SearchStrategy[AddAddress]:
    return _text_of(
        string.ascii_letters, ADDRESS_MIN_LENGTH, ADDRESS_MAX_LENGTH
    ).map(AddAddress)


def add_payment_details_commands() -> st.SearchStrategy[AddPaymentDetails]:
    """Exactly ``PAYMENT_DETAILS_LENGTH`` digits, zero-padded."""
    return st.integers(min_value=0, max_value=10**PAYMENT_DETAILS_LENGTH - 1).map(
        lambda n: AddPaymentDetails(f"{n:0{PAYMENT_DETAILS_LENGTH}d}")
    )


def create_order_commands() -> st.SearchStrategy[CreateOrder]:
    return st.just(CreateOrder())


# ---------------------------------------------------------------------------
# Unconstrained journeys
# ---------------------------------------------------------------------------


def command_strategy(config: HarnessSettings | None = None) -> st.SearchStrategy[Command]:
    """Any of the five commands with equal weight, regardless of validity."""
    config = config or HarnessSettings()
    return st.one_of(
        add_item_commands(),
        reduce_item_commands(config.reduce_range_max),
        add_address_commands(),
        add_payment_details_commands(),
        create_order_commands(),
    )


def random_journeys(
    config: HarnessSettings | None = None,
) -> st.SearchStrategy[tuple[Command, ...]]:
    config = config or HarnessSettings()
    return st.lists(
        command_strategy(config),
        min_size=config.journey_min_length,
        max_size=config.journey_max_length,
    ).map(tuple)


# ---------------------------------------------------------------------------
# Valid-by-construction journeys
# ---------------------------------------------------------------------------

_ALL_KINDS: tuple[CommandKind, ...] = (
    CommandKind.CREATE_ORDER,
    CommandKind.ADD_PAYMENT_DETAILS,
    CommandKind.ADD_ADDRESS,
    CommandKind.ADD_ITEM,
    CommandKind.REDUCE_ITEM,
)


def allowed_commands(model: Model) -> tuple[CommandKind, ...]:
    """The command variants the valid generator may draw from for *model*."""
    match model:
        case Model(order_created=True):
            return ()
        case Model(has_payment_details=True, items=items) if items:
            return _ALL_KINDS
        case Model(has_payment_details=True):
            # No items: cannot order or reduce.
            return (
                CommandKind.ADD_ADDRESS,
                CommandKind.ADD_ITEM,
                CommandKind.ADD_PAYMENT_DETAILS,
            )
        case Model(has_address=True, items=items) if items:
            return (
                CommandKind.ADD_PAYMENT_DETAILS,
                CommandKind.ADD_ADDRESS,
                CommandKind.ADD_ITEM,
                CommandKind.REDUCE_ITEM,
            )
        case Model(has_address=True):
            return (
                CommandKind.ADD_PAYMENT_DETAILS,
                CommandKind.ADD_ADDRESS,
                CommandKind.ADD_ITEM,
            )
        case Model(items=items) if items:
            return (
                CommandKind.ADD_ADDRESS,
                CommandKind.ADD_ITEM,
                CommandKind.REDUCE_ITEM,
            )
        case _:
            return (CommandKind.ADD_ITEM,)


def _reduce_existing_item(model: Model) -> st.SearchStrategy[ReduceItem]:
    # Picks a line the model holds and an amount within its quantity; the
    # selector/amount encoding resolves back to exactly that choice.
    skus = sorted(model.items)
    return st.integers(min_value=0, max_value=len(skus) - 1).flatmap(
        lambda index: st.integers(
            min_value=0, max_value=model.items[skus[index]] - 1
        ).map(lambda amount: ReduceItem(selector=index, amount=amount))
    )


def _valid_command(kind: CommandKind, model: Model) -> st.SearchStrategy[Command]:
    match kind:
        case CommandKind.ADD_ITEM:
            return add_item_commands()
        case CommandKind.REDUCE_ITEM:
            return _reduce_existing_item(model)
        case CommandKind.ADD_ADDRESS:
            return add_address_commands()
        case CommandKind.ADD_PAYMENT_DETAILS:
            return add_payment_details_commands()
        case CommandKind.CREATE_ORDER:
            return create_order_commands()
        case _:
            assert_never(kind)


@dataclass(slots=True, frozen=True)
class JourneyStep:
    """One step of a valid journey: the model before it and the command."""

    model: Model
    command: Command


class Journey:
    """A valid journey: its first step and a lazily drawn remainder.

    ``rest`` is computed on first access and cached; iterating a
    ``Journey`` walks the chain, drawing each further step on demand.
    """

    __slots__ = ("_rest", "_rest_factory", "step")

    def __init__(
        self,
        step: JourneyStep,
        rest: Callable[[], Journey | None],
    ) -> None:
        self.step = step
        self._rest: Journey | None = None
        self._rest_factory: Callable[[], Journey | None] | None = rest

    @property
    def rest(self) -> Journey | None:
        if self._rest_factory is not None:
            self._rest = self._rest_factory()
            self._rest_factory = None
        return self._rest

    @property
    def is_forced(self) -> bool:
        """``True`` once the remainder has been drawn."""
        return self._rest_factory is None

    def __iter__(self) -> Iterator[JourneyStep]:
        node: Journey | None = self
        while node is not None:
            yield node.step
            node = node.rest

    def __repr__(self) -> str:
        return f"Journey(step={self.step!r}, forced={self.is_forced})"


def build_valid_journey(
    draw: Draw,
    model: Model | None = None,
    *,
    max_steps: int = 200,
) -> Journey | None:
    """Draw a valid journey starting from *model* (default: an empty model).

    Returns ``None`` (the empty journey) once the model records a created
    order.  *max_steps* truncates a journey that has not reached the order
    terminal; a truncated journey is still valid.
    """
    return _remaining_journey(draw, model if model is not None else Model(), max_steps)


def _remaining_journey(draw: Draw, model: Model, remaining: int) -> Journey | None:
    if model.order_created or remaining <= 0:
        return None
    command = draw(st.one_of([_valid_command(k, model) for k in allowed_commands(model)]))
    next_model = transition(command, model)
    return Journey(
        JourneyStep(model=model, command=command),
        lambda: _remaining_journey(draw, next_model, remaining - 1),
    )


def valid_journeys(
    config: HarnessSettings | None = None,
) -> st.SearchStrategy[tuple[JourneyStep, ...]]:
    """Materialised valid journeys, for use with ``@given``."""
    config = config or HarnessSettings()

    @st.composite
    def _journeys(draw):
        journey = build_valid_journey(draw, max_steps=config.valid_journey_max_steps)
        return tuple(journey) if journey is not None else ()

    return _journeys()
