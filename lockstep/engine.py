"""Lockstep replay engine.

Replays a journey against a basket service and the model together:

1.  Start from ``Model()`` and an ``Empty`` basket.
2.  For each command, evaluate its precondition against the current model.
    In ``UNCONSTRAINED`` mode a failing precondition skips the step: no
    service call, no model transition, no invariant check.  In ``VALID``
    mode it raises ``PreconditionViolationError``, since a valid journey
    must never contain such a step.
3.  Apply the command to the basket (``perform``) and to the model
    (``transition``).
4.  Check every basket/model invariant; a failure raises
    ``InvariantViolationError`` carrying every step applied so far,
    including the failing one.
5.  Stop as soon as the basket is an ``Order``.  Remaining commands are
    never pulled from the iterable, so lazy journeys are not drawn past
    the terminal.

Each replay owns its model and basket; nothing is shared between replays.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from lockstep.basket import BasketService, Empty, Order
from lockstep.commands import kind_of, perform, precondition, transition
from lockstep.exceptions import PreconditionViolationError
from lockstep.invariants import check_invariants, raise_for_violations
from lockstep.model import Model

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from lockstep.basket import Basket
    from lockstep.commands import Command
    from lockstep.generators import JourneyStep

log = logging.getLogger(__name__)

__all__ = [
    "ReplayMode",
    "ReplayResult",
    "TraceStep",
    "format_trace",
    "replay",
    "replay_journey",
]


class ReplayMode(StrEnum):
    """How the engine treats a command whose precondition fails."""

    UNCONSTRAINED = "unconstrained"
    """Skip the command."""

    VALID = "valid"
    """Raise ``PreconditionViolationError``."""


@dataclass(slots=True, frozen=True)
class TraceStep:
    """One applied step of a replay.

    Attributes
    ----------
    index : int
        Position of the command in the replayed journey (skipped commands
        count towards positions).
    command : Command
        The command applied.
    model_before, model_after : Model
        The model either side of the command.
    basket : Basket
        The basket after the command.
    """

    index: int
    command: Command
    model_before: Model
    model_after: Model
    basket: Basket


@dataclass(slots=True)
class ReplayResult:
    """Outcome of a replay that raised no invariant violation.

    Attributes
    ----------
    steps : tuple[TraceStep, ...]
        Applied steps, in order.
    skipped : tuple[int, ...]
        Journey positions skipped because their precondition failed.
    terminated_early : bool
        ``True`` when the replay stopped at an ``Order`` basket.
    final_model : Model
    final_basket : Basket
    """

    steps: tuple[TraceStep, ...] = ()
    skipped: tuple[int, ...] = ()
    terminated_early: bool = False
    final_model: Model = field(default_factory=Model)
    final_basket: Basket = field(default_factory=Empty)

    @property
    def applied_commands(self) -> tuple[Command, ...]:
        return tuple(s.command for s in self.steps)


def replay(
    commands: Iterable[Command],
    *,
    mode: ReplayMode = ReplayMode.UNCONSTRAINED,
    service: BasketService | None = None,
) -> ReplayResult:
    """Replay *commands* against a fresh basket and model in lockstep.

    Parameters
    ----------
    commands:
        The journey.  Consumed lazily, and only up to the order terminal.
    mode:
        Treatment of commands whose precondition fails (see ``ReplayMode``).
    service:
        Basket service under test; defaults to a defect-free service.

    Returns
    -------
    ReplayResult

    Raises
    ------
    InvariantViolationError
        When basket and model disagree after a step.
    PreconditionViolationError
        In ``VALID`` mode, when a command's precondition fails.
    MalformedAdapterCallError
        When the service is handed a basket in an unsupported phase.
    """
    service = service if service is not None else BasketService()
    model = Model()
    basket: Basket = Empty()
    steps: list[TraceStep] = []
    skipped: list[int] = []

    for index, command in enumerate(commands):
        if not precondition(command, model):
            if mode is ReplayMode.VALID:
                raise PreconditionViolationError(command, model, step=index)
            log.debug("step %d: skipping %s, precondition not met", index, kind_of(command))
            skipped.append(index)
            continue

        next_basket = perform(command, service, basket)
        next_model = transition(command, model)
        steps.append(
            TraceStep(
                index=index,
                command=command,
                model_before=model,
                model_after=next_model,
                basket=next_basket,
            )
        )
        basket, model = next_basket, next_model

        raise_for_violations(check_invariants(basket, model), step=index, trace=steps)

        if isinstance(basket, Order):
            log.debug("step %d: order created, stopping replay", index)
            return ReplayResult(
                steps=tuple(steps),
                skipped=tuple(skipped),
                terminated_early=True,
                final_model=model,
                final_basket=basket,
            )

    return ReplayResult(
        steps=tuple(steps),
        skipped=tuple(skipped),
        terminated_early=False,
        final_model=model,
        final_basket=basket,
    )


def replay_journey(
    journey: Iterable[JourneyStep] | None,
    *,
    service: BasketService | None = None,
) -> ReplayResult:
    """Replay a valid-by-construction journey in ``VALID`` mode.

    Accepts a lazy ``Journey``, a materialised tuple of ``JourneyStep``, or
    ``None`` for the empty journey.
    """
    steps = journey if journey is not None else ()
    return replay(
        (s.command for s in steps),
        mode=ReplayMode.VALID,
        service=service,
    )


def format_trace(trace: Sequence[TraceStep]) -> str:
    """Render *trace* one step per line, with the model after each step."""
    return "\n".join(
        f"#{s.index} {kind_of(s.command)} -> {s.basket.phase.name} "
        f"model={json.dumps(s.model_after.to_dict(), sort_keys=True)}"
        for s in trace
    )
