"""Harness exception hierarchy.

Three failure classes exist in a lockstep replay:

* ``PreconditionViolationError`` — a command was about to run against a
  model that does not allow it.  Only raised in valid-by-construction
  replay, where it indicates a generator bug.
* ``InvariantViolationError`` — the SUT and the model diverged.  This is
  the counterexample signal the harness exists to produce.
* ``MalformedAdapterCallError`` — the SUT adapter was called with a basket
  in a phase it does not accept.  Always fatal.

All harness exceptions inherit from ``HarnessError`` to enable blanket
``except HarnessError`` handling in callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence


class HarnessError(Exception):
    """Base exception for all harness failures."""

    __slots__ = ()


class PreconditionViolationError(HarnessError):
    """Raised when a command is replayed against a model that forbids it.

    Attributes
    ----------
    command : Any
        The offending command.
    model : Any
        The model the precondition was evaluated against.
    step : int
        Zero-based position of the command in the replayed journey.
    """

    __slots__ = ("command", "model", "step")

    def __init__(self, command: Any, model: Any, *, step: int) -> None:
        super().__init__(
            f"Precondition of {command!r} does not hold at step {step} "
            f"against {model!r}"
        )
        self.command = command
        self.model = model
        self.step = step


class InvariantViolationError(HarnessError):
    """Raised when the SUT state and the model disagree after a step.

    Attributes
    ----------
    invariant : str
        Short identifier for the violated invariant
        (e.g. ``"item_tally"``).
    step : int
        Zero-based position, in the replayed journey, of the command after
        which the divergence was detected.
    detail : str
        Human-readable description of the divergence.
    trace : tuple
        Every applied step up to and including the failing one.
    """

    __slots__ = ("detail", "invariant", "step", "trace")

    def __init__(
        self,
        invariant: str,
        *,
        step: int,
        detail: str = "",
        trace: Sequence[Any] = (),
    ) -> None:
        msg = f"Invariant {invariant!r} violated after step {step}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.invariant = invariant
        self.step = step
        self.detail = detail
        self.trace = tuple(trace)


class MalformedAdapterCallError(HarnessError):
    """Raised when a basket operation receives a basket in the wrong phase.

    The engine and generators guarantee this never happens while
    preconditions are enforced, so it is never absorbed.

    Attributes
    ----------
    operation : str
        Name of the basket operation that was called.
    phase : str
        Phase of the basket that was passed in.
    expected : str
        Description of the phases the operation accepts.
    """

    __slots__ = ("expected", "operation", "phase")

    def __init__(self, operation: str, *, phase: str, expected: str) -> None:
        super().__init__(
            f"{operation}() called on a basket in phase {phase!r}; "
            f"expected {expected}"
        )
        self.operation = operation
        self.phase = phase
        self.expected = expected


class CounterexampleError(HarnessError):
    """Raised by the property runner when a counterexample was found.

    Attributes
    ----------
    seed : int
        Seed that deterministically reproduces the failure via ``recheck``.
    counterexample : Any
        The (minimised) failing input.
    cause : BaseException
        The failure raised by the property for ``counterexample``.
    """

    __slots__ = ("cause", "counterexample", "seed")

    def __init__(
        self,
        *,
        seed: int,
        counterexample: Any,
        cause: BaseException,
    ) -> None:
        super().__init__(f"Counterexample found (seed={seed}): {cause}")
        self.seed = seed
        self.counterexample = counterexample
        self.cause = cause
