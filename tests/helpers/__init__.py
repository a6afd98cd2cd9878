"""Test helpers module for shared test utilities.

- constants: Fixed-point scale and the reference pool's parameters
- factories: Pool parameter and engine factory functions
"""

from tests.helpers.constants import (
    AMP,
    BALANCE,
    DEPEG_SWAP,
    FEE,
    OFFPEG_FEE_MULTIPLIER,
    ONE,
    TOTAL_SUPPLY,
)
from tests.helpers.factories import make_depegged_engine, make_engine, make_params

__all__ = [
    # Constants
    "ONE",
    "AMP",
    "FEE",
    "OFFPEG_FEE_MULTIPLIER",
    "BALANCE",
    "TOTAL_SUPPLY",
    "DEPEG_SWAP",
    # Factories
    "make_params",
    "make_engine",
    "make_depegged_engine",
]
