"""StableSwap-NG pool replica.

This package reproduces the pool contract's integer math off-chain so that
AMO actions can be sized before anything is sent on-chain.
"""

# Engine
from .engine import StableSwapEngine

# Errors
from .errors import (
    ConvergenceError,
    ExceedsSupplyError,
    InitialDepositError,
    InvariantError,
    NegativeResultError,
    RangeError,
    SlippageError,
    StableSwapError,
    UnderflowError,
    UnreachableError,
    ValidationError,
)

# Records
from .params import PoolParameters, PoolSnapshot, ProportionalWithdrawal

# Stable math
from .stable_math import dynamic_fee, get_d, get_y, get_y_d, marginal_prices, normalize

__all__ = [
    # Engine
    "StableSwapEngine",
    # Records
    "PoolParameters",
    "PoolSnapshot",
    "ProportionalWithdrawal",
    # Stable math functions
    "normalize",
    "get_d",
    "get_y",
    "get_y_d",
    "dynamic_fee",
    "marginal_prices",
    # Errors
    "StableSwapError",
    "ValidationError",
    "ConvergenceError",
    "UnderflowError",
    "InitialDepositError",
    "InvariantError",
    "NegativeResultError",
    "SlippageError",
    "ExceedsSupplyError",
    "RangeError",
    "UnreachableError",
]
