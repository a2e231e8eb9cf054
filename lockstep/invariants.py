"""Basket/model correspondence checks.

Run after every applied step of a replay.  Each checker is a pure function
of ``(basket, model)`` returning ``None`` when its invariant holds or an
``InvariantViolation`` describing the divergence:

* ``check_empty_basket``      — an ``Empty`` basket means an untouched model.
* ``check_item_tally``        — basket lines tally exactly to ``model.items``.
* ``check_address_phase``     — phase ≥ WithAddress ⟺ ``has_address``.
* ``check_payment_phase``     — phase ≥ WithPaymentDetails ⟺ ``has_payment_details``.
* ``check_order_phase``       — phase is Order ⟺ ``order_created``.
* ``check_model_consistency`` — ``order_created ⟹ has_payment_details ⟹ has_address``.

The converse of the first check is deliberately absent: a model whose
items were all reduced away is empty while its basket has long since left
the ``Empty`` phase.

``check_invariants`` runs every checker and returns an
``InvariantReport``; ``raise_for_violations`` turns a failed report into an
``InvariantViolationError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lockstep.basket import (
    Empty,
    Order,
    WithAddress,
    WithItems,
    WithPaymentDetails,
    item_tally,
)
from lockstep.exceptions import InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lockstep.basket import Basket
    from lockstep.model import Model


@dataclass(slots=True, frozen=True)
class InvariantViolation:
    """A single basket/model divergence.

    Attributes
    ----------
    invariant : str
        Short identifier of the violated invariant (e.g. ``"item_tally"``).
    detail : str
        Human-readable description of the divergence.
    """

    invariant: str
    detail: str


@dataclass(slots=True)
class InvariantReport:
    """Result of ``check_invariants``.

    Attributes
    ----------
    passed : bool
        ``True`` iff no violations were found.
    violations : list[InvariantViolation]
        Every violation found, in checker order.
    """

    passed: bool
    violations: list[InvariantViolation] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Checkers
# ---------------------------------------------------------------------------


def check_empty_basket(basket: Basket, model: Model) -> InvariantViolation | None:
    if not isinstance(basket, Empty):
        return None
    raised = [
        name
        for name in ("has_address", "has_payment_details", "order_created", "ever_had_item")
        if getattr(model, name)
    ]
    if model.items or raised:
        return InvariantViolation(
            invariant="empty_basket",
            detail=(
                f"basket is Empty but model has items={dict(model.items)!r} "
                f"and flags set={raised!r}"
            ),
        )
    return None


def check_item_tally(basket: Basket, model: Model) -> InvariantViolation | None:
    """Basket lines, totalled per SKU, must equal the model's items exactly."""
    if not isinstance(basket, WithItems):
        return None
    tally = item_tally(basket.items)
    expected = dict(model.items)
    if tally != expected:
        return InvariantViolation(
            invariant="item_tally",
            detail=f"basket tally {tally!r} != model items {expected!r}",
        )
    return None


def _phase_flag_check(
    basket: Basket,
    reached: bool,
    flag: bool,
    invariant: str,
    flag_name: str,
) -> InvariantViolation | None:
    if reached == flag:
        return None
    return InvariantViolation(
        invariant=invariant,
        detail=f"basket is in phase {basket.phase.name} but model.{flag_name}={flag}",
    )


def check_address_phase(basket: Basket, model: Model) -> InvariantViolation | None:
    return _phase_flag_check(
        basket,
        isinstance(basket, WithAddress),
        model.has_address,
        "address_phase",
        "has_address",
    )


def check_payment_phase(basket: Basket, model: Model) -> InvariantViolation | None:
    return _phase_flag_check(
        basket,
        isinstance(basket, WithPaymentDetails),
        model.has_payment_details,
        "payment_phase",
        "has_payment_details",
    )


def check_order_phase(basket: Basket, model: Model) -> InvariantViolation | None:
    return _phase_flag_check(
        basket,
        isinstance(basket, Order),
        model.order_created,
        "order_phase",
        "order_created",
    )


def check_model_consistency(basket: Basket, model: Model) -> InvariantViolation | None:
    """The model's own flags must form the chain order ⟹ payment ⟹ address."""
    if model.order_created and not model.has_payment_details:
        return InvariantViolation(
            invariant="model_consistency",
            detail="model.order_created without has_payment_details",
        )
    if model.has_payment_details and not model.has_address:
        return InvariantViolation(
            invariant="model_consistency",
            detail="model.has_payment_details without has_address",
        )
    return None


_CHECKS = (
    check_model_consistency,
    check_empty_basket,
    check_item_tally,
    check_address_phase,
    check_payment_phase,
    check_order_phase,
)


# ---------------------------------------------------------------------------
# Main API
# ---------------------------------------------------------------------------


def check_invariants(basket: Basket, model: Model) -> InvariantReport:
    """Check every basket/model invariant.

    Parameters
    ----------
    basket:
        The basket produced by the step just applied.
    model:
        The model produced by the same step.

    Returns
    -------
    InvariantReport
        ``passed=True`` iff every checker returned ``None``.
    """
    violations: list[InvariantViolation] = []
    for checker in _CHECKS:
        v = checker(basket, model)
        if v is not None:
            violations.append(v)
    return InvariantReport(passed=not violations, violations=violations)


def raise_for_violations(
    report: InvariantReport,
    *,
    step: int,
    trace: Sequence[Any] = (),
) -> None:
    """Raise ``InvariantViolationError`` for the first violation in *report*.

    Every violation's detail is included in the message; ``invariant``
    names the first one.
    """
    if report.passed:
        return
    first = report.violations[0]
    detail = "; ".join(f"[{v.invariant}] {v.detail}" for v in report.violations)
    raise InvariantViolationError(
        first.invariant,
        step=step,
        detail=detail,
        trace=trace,
    )
