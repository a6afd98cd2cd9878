"""Pytest configuration and fixtures."""

import pytest

from amo.peg import PegSolver
from amo.pool import StableSwapEngine
from tests.helpers import make_depegged_engine, make_engine


@pytest.fixture
def engine() -> StableSwapEngine:
    """Balanced reference pool: 300k/300k, A=200, supply 600k."""
    return make_engine()


@pytest.fixture
def depegged_engine() -> StableSwapEngine:
    """Reference pool after swapping 200k coin0 for coin1."""
    return make_depegged_engine()


@pytest.fixture
def solver(engine: StableSwapEngine) -> PegSolver:
    """PegSolver over the balanced pool with default config."""
    return PegSolver(engine)


@pytest.fixture
def depegged_solver(depegged_engine: StableSwapEngine) -> PegSolver:
    """PegSolver over the depegged pool with default config."""
    return PegSolver(depegged_engine)
