"""Shared test fixtures for lockstep."""

from __future__ import annotations

import os

import pytest

from lockstep.basket import BasketService


@pytest.fixture(autouse=True)
def clear_lockstep_env(monkeypatch):
    """Keep LOCKSTEP_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("LOCKSTEP_"):
            monkeypatch.delenv(name)


@pytest.fixture
def service() -> BasketService:
    """A defect-free basket service."""
    return BasketService()
