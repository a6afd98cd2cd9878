"""AMO peg solvers.

PegSolver sizes swaps and single-sided liquidity moves against a
StableSwapEngine so that the coin_k per coin0 price reaches a target or stays
within a peg band.
"""

from .config import DEFAULT_PEG_CONFIG, PegConfig
from .result import (
    AddOutputResult,
    AddTargetResult,
    PegAddResult,
    PegRemoveResult,
    PegSwapResult,
    PriceOutput,
    RemoveOutputResult,
    RemoveTargetResult,
    SwapOutputResult,
    SwapTargetResult,
)
from .search import Clamp, Crossing, find_max_within, find_min_crossing
from .solver import PegSolver

__all__ = [
    # Solver
    "PegSolver",
    # Config
    "PegConfig",
    "DEFAULT_PEG_CONFIG",
    # Results
    "PriceOutput",
    "SwapTargetResult",
    "AddTargetResult",
    "RemoveTargetResult",
    "PegSwapResult",
    "PegAddResult",
    "PegRemoveResult",
    "SwapOutputResult",
    "AddOutputResult",
    "RemoveOutputResult",
    # Search
    "Crossing",
    "Clamp",
    "find_min_crossing",
    "find_max_within",
]
