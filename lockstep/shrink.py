"""Manual shrink strategies for failing journeys.

Hypothesis already shrinks journeys structurally.  The functions here are
the narrower, hand-written alternative, used when a run is configured
for manual shrinking:

- ``single_deletion_shrinks`` — for a journey of length *n*, lazily yield
  the *n* journeys obtained by deleting exactly one command, keeping the
  rest in order.  Every candidate is strictly shorter than its input.
- ``revalidated_shrinks`` — the same neighbourhood for valid journeys,
  with the model re-threaded through the remainder so that every
  candidate is itself valid.
- ``minimize`` — greedy descent: move to the first failing candidate
  and repeat until no candidate fails.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from lockstep.commands import precondition, transition
from lockstep.generators import JourneyStep
from lockstep.model import Model

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from lockstep.commands import Command

log = logging.getLogger(__name__)

T = TypeVar("T")


def single_deletion_shrinks(journey: Sequence[T]) -> Iterator[tuple[T, ...]]:
    """Yield *journey* with each single element removed, in index order."""
    for i in range(len(journey)):
        yield (*journey[:i], *journey[i + 1 :])


def revalidate(commands: Iterable[Command]) -> tuple[JourneyStep, ...]:
    """Thread a fresh model through *commands*, keeping only the valid ones.

    Commands whose precondition fails against the model at their position
    are dropped; threading stops after the command that creates the order.
    """
    model = Model()
    steps: list[JourneyStep] = []
    for command in commands:
        if model.order_created:
            break
        if not precondition(command, model):
            continue
        steps.append(JourneyStep(model=model, command=command))
        model = transition(command, model)
    return tuple(steps)


def revalidated_shrinks(
    journey: Sequence[JourneyStep],
) -> Iterator[tuple[JourneyStep, ...]]:
    """Single-deletion neighbours of a valid journey, re-derived to stay valid.

    Deleting one step can invalidate later ones (removing the only
    ``AddItem`` invalidates every later ``AddAddress``), so the remainder is
    re-threaded through ``revalidate``.  Candidates may therefore be more
    than one step shorter than *journey*.
    """
    commands = [s.command for s in journey]
    for candidate in single_deletion_shrinks(commands):
        yield revalidate(candidate)


def minimize(
    value: T,
    fails: Callable[[T], bool],
    shrink: Callable[[T], Iterable[T]],
) -> T:
    """Greedily minimise a failing *value*.

    Repeatedly replaces *value* with the first candidate from
    ``shrink(value)`` for which ``fails`` is ``True``; stops when no
    candidate fails.  Candidates are consumed lazily, so only the
    neighbourhood up to the first failing candidate is evaluated.

    Parameters
    ----------
    value:
        An input for which ``fails(value)`` is ``True``.
    fails:
        Predicate returning ``True`` when the property fails for an input.
    shrink:
        Neighbour function producing strictly smaller candidates.

    Returns
    -------
    T
        A value none of whose candidates fail.
    """
    rounds = 0
    current = value
    while True:
        for candidate in shrink(current):
            if fails(candidate):
                current = candidate
                rounds += 1
                break
        else:
            log.debug("minimize: settled after %d shrink step(s)", rounds)
            return current
