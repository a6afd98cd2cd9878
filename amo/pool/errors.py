"""StableSwap engine error classes.

Each error maps to a revert condition of the pool contract (or to a
precondition the off-chain replica enforces before touching state).
"""


class StableSwapError(Exception):
    """Base error for StableSwap engine operations."""

    pass


class ValidationError(StableSwapError, ValueError):
    """Malformed input: wrong vector length, bad coin index, non-positive amount."""

    pass


class ConvergenceError(StableSwapError):
    """Newton-Raphson iteration for D or y did not stabilize within 255 steps."""

    pass


class UnderflowError(StableSwapError):
    """A pool balance would become negative."""

    pass


class InitialDepositError(StableSwapError):
    """First deposit into an empty pool must include every coin."""

    pass


class InvariantError(StableSwapError):
    """Invariant moved the wrong way (e.g. D1 <= D0 on deposit)."""

    pass


class NegativeResultError(StableSwapError):
    """Single-coin withdrawal produced a negative output or fee."""

    pass


class SlippageError(StableSwapError):
    """Required LP burn exceeds the caller's maximum."""

    pass


class ExceedsSupplyError(StableSwapError):
    """Burn amount exceeds the outstanding LP supply."""

    pass


class RangeError(StableSwapError, IndexError):
    """Measured coin index outside [1, n)."""

    pass


class UnreachableError(StableSwapError):
    """Requested output cannot be reached within the input bound."""

    pass
