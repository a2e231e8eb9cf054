"""lockstep — model-based sequential-command testing harness.

Public API:
    - Model                       — immutable abstract basket state
    - AddItem, ReduceItem, AddAddress, AddPaymentDetails, CreateOrder
                                  — the journey commands
    - precondition / transition   — pure model-side command semantics
    - perform                     — run one command against the basket service
    - BasketService, BasketDefect — the worked-example SUT and its seedable defects
    - random_journeys             — unconstrained journey strategy
    - valid_journeys              — valid-by-construction journey strategy
    - build_valid_journey         — lazy valid journey from a draw function
    - replay / replay_journey     — lockstep replay with invariant checking
    - check_invariants            — (basket, model) -> InvariantReport
    - single_deletion_shrinks     — manual shrink neighbourhood
    - minimize                    — greedy re-minimisation
    - check_property / recheck    — seeded Hypothesis property runs
    - HarnessSettings             — environment-driven configuration
    - HarnessError                — base exception for blanket catch
"""

from __future__ import annotations

from lockstep.basket import BasketDefect, BasketService, Item
from lockstep.commands import (
    AddAddress,
    AddItem,
    AddPaymentDetails,
    Command,
    CommandKind,
    CreateOrder,
    ReduceItem,
    perform,
    precondition,
    transition,
)
from lockstep.config import HarnessSettings
from lockstep.engine import ReplayMode, ReplayResult, replay, replay_journey
from lockstep.exceptions import (
    CounterexampleError,
    HarnessError,
    InvariantViolationError,
    MalformedAdapterCallError,
    PreconditionViolationError,
)
from lockstep.generators import (
    Journey,
    JourneyStep,
    build_valid_journey,
    random_journeys,
    valid_journeys,
)
from lockstep.invariants import InvariantReport, check_invariants
from lockstep.model import Model
from lockstep.properties import check_journeys, check_property, recheck
from lockstep.shrink import minimize, revalidated_shrinks, single_deletion_shrinks

__all__ = [
    "AddAddress",
    "AddItem",
    "AddPaymentDetails",
    "BasketDefect",
    "BasketService",
    "Command",
    "CommandKind",
    "CounterexampleError",
    "CreateOrder",
    "HarnessError",
    "HarnessSettings",
    "InvariantReport",
    "InvariantViolationError",
    "Item",
    "Journey",
    "JourneyStep",
    "MalformedAdapterCallError",
    "Model",
    "PreconditionViolationError",
    "ReduceItem",
    "ReplayMode",
    "ReplayResult",
    "build_valid_journey",
    "check_invariants",
    "check_journeys",
    "check_property",
    "minimize",
    "perform",
    "precondition",
    "recheck",
    "replay",
    "replay_journey",
    "revalidated_shrinks",
    "single_deletion_shrinks",
    "transition",
    "valid_journeys",
]
