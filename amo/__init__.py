"""StableSwap-NG replica and AMO peg solvers."""

from amo.models import PoolData
from amo.peg import PegConfig, PegSolver
from amo.pool import PoolParameters, StableSwapEngine, StableSwapError

__version__ = "0.1.0"

__all__ = [
    "PegConfig",
    "PegSolver",
    "PoolData",
    "PoolParameters",
    "StableSwapEngine",
    "StableSwapError",
]
