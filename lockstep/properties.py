"""Property execution on top of Hypothesis.

``check_property`` runs a property against repeated draws from a strategy
under a fixed seed.  On the first failure it raises ``CounterexampleError``
carrying that seed; ``recheck`` with the same seed replays the identical
run and reproduces the identical counterexample.

Two shrink modes are available:

* Structural (default) — Hypothesis shrinks the failing input itself.
* Manual — Hypothesis' shrink phase is switched off and the failing input
  is re-minimised with ``shrink.minimize`` using a caller-supplied
  neighbour function (e.g. ``single_deletion_shrinks``).

``check_journeys`` wires the standard basket properties together from a
``HarnessSettings``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from hypothesis import given
from hypothesis import seed as hypothesis_seed

from lockstep.config import HarnessSettings
from lockstep.engine import replay, replay_journey
from lockstep.exceptions import CounterexampleError, InvariantViolationError
from lockstep.generators import random_journeys, valid_journeys
from lockstep.shrink import minimize, revalidated_shrinks, single_deletion_shrinks

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from hypothesis.strategies import SearchStrategy

    from lockstep.basket import BasketService
    from lockstep.commands import Command
    from lockstep.engine import ReplayResult
    from lockstep.generators import JourneyStep

log = logging.getLogger(__name__)

T = TypeVar("T")

#: Exceptions that mark a property as failed.  Anything else (health-check
#: failures, malformed adapter calls) propagates unchanged.
FAILURES: tuple[type[BaseException], ...] = (InvariantViolationError, AssertionError)

#: Seed used when ``derandomize`` is set and the caller passes none.
DERANDOMIZED_SEED = 0


@dataclass(slots=True, frozen=True)
class PropertyReport:
    """Outcome of a passing property run.

    Attributes
    ----------
    seed : int
        Seed the run used; pass it to ``recheck`` to repeat the run.
    test_cases : int
        Number of times the property was evaluated.
    """

    seed: int
    test_cases: int


def failure_of(prop: Callable[[T], object], value: T) -> BaseException | None:
    """Run *prop* on *value*; return the failure it raised, if any."""
    try:
        prop(value)
    except FAILURES as exc:
        return exc
    return None


def check_property(
    strategy: SearchStrategy[T],
    prop: Callable[[T], object],
    *,
    config: HarnessSettings | None = None,
    seed: int | None = None,
    shrink: Callable[[T], Iterable[T]] | None = None,
) -> PropertyReport:
    """Check *prop* against ``config.max_examples`` draws from *strategy*.

    Parameters
    ----------
    strategy:
        Hypothesis strategy producing the inputs.
    prop:
        The property; fails by raising one of ``FAILURES``.
    config:
        Harness settings; defaults to ``HarnessSettings()``.
    seed:
        Seed for the run.  When omitted, ``DERANDOMIZED_SEED`` is used if
        ``config.derandomize`` is set, otherwise a fresh one is chosen.
    shrink:
        Neighbour function for manual shrinking.  When given, Hypothesis
        does not shrink and ``minimize`` re-minimises the first failure.

    Returns
    -------
    PropertyReport
        When no draw made *prop* fail.

    Raises
    ------
    CounterexampleError
        On failure; carries the seed and the minimised counterexample.
    """
    config = config or HarnessSettings()
    if seed is not None:
        run_seed = seed
    elif config.derandomize:
        run_seed = DERANDOMIZED_SEED
    else:
        run_seed = random.getrandbits(64)
    last_failing: list[T] = []
    calls = 0

    def _property(value: T) -> None:
        nonlocal calls
        calls += 1
        try:
            prop(value)
        except FAILURES:
            last_failing[:] = [value]
            raise

    test = hypothesis_seed(run_seed)(
        config.hypothesis_settings(shrink=shrink is None)(given(strategy)(_property))
    )
    try:
        test()
    except FAILURES as exc:
        counterexample = last_failing[0]
        cause: BaseException = exc
        if shrink is not None:
            counterexample = minimize(
                counterexample,
                lambda v: failure_of(prop, v) is not None,
                shrink,
            )
            cause = failure_of(prop, counterexample) or exc
        log.info("counterexample found (seed=%d): %s", run_seed, cause)
        raise CounterexampleError(
            seed=run_seed,
            counterexample=counterexample,
            cause=cause,
        ) from cause

    log.debug("property held for %d test case(s) (seed=%d)", calls, run_seed)
    return PropertyReport(seed=run_seed, test_cases=calls)


def recheck(
    strategy: SearchStrategy[T],
    prop: Callable[[T], object],
    seed: int,
    *,
    config: HarnessSettings | None = None,
    shrink: Callable[[T], Iterable[T]] | None = None,
) -> PropertyReport:
    """Repeat the run identified by *seed*; same inputs give the same failure."""
    return check_property(strategy, prop, config=config, seed=seed, shrink=shrink)


# ---------------------------------------------------------------------------
# Basket journey properties
# ---------------------------------------------------------------------------


def journey_property(
    service: BasketService | None = None,
) -> Callable[[Sequence[Command]], ReplayResult]:
    """Property over unconstrained journeys: replay, skipping invalid steps."""

    def _check(commands: Sequence[Command]) -> ReplayResult:
        return replay(commands, service=service)

    return _check


def valid_journey_property(
    service: BasketService | None = None,
) -> Callable[[Sequence[JourneyStep]], ReplayResult]:
    """Property over valid-by-construction journeys."""

    def _check(journey: Sequence[JourneyStep]) -> ReplayResult:
        return replay_journey(journey, service=service)

    return _check


def check_journeys(
    service: BasketService | None = None,
    *,
    config: HarnessSettings | None = None,
    seed: int | None = None,
    valid: bool = False,
) -> PropertyReport:
    """Check a basket service against generated journeys.

    *valid* selects valid-by-construction journeys instead of unconstrained
    ones.  ``config.manual_shrink`` selects the manual shrink strategy
    matching the journey type.
    """
    config = config or HarnessSettings()
    strategy: SearchStrategy[Any]
    if valid:
        strategy = valid_journeys(config)
        prop: Callable[[Any], object] = valid_journey_property(service)
        shrink: Callable[[Any], Iterable[Any]] = revalidated_shrinks
    else:
        strategy = random_journeys(config)
        prop = journey_property(service)
        shrink = single_deletion_shrinks
    return check_property(
        strategy,
        prop,
        config=config,
        seed=seed,
        shrink=shrink if config.manual_shrink else None,
    )
