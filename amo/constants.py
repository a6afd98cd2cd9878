"""Fixed-point constants and small integer helpers.

All scaling factors match the StableSwap-NG contract so that every quote
reproduces on-chain rounding exactly.
"""

from __future__ import annotations

# 18-decimal precision for rates, prices and virtual price
PRECISION = 10**18

# Fees are expressed with 10 decimals (1e10 == 100%)
FEE_DENOMINATOR = 10**10

# The contract stores A multiplied by A_PRECISION
A_PRECISION = 100

# Admin share of every fee is hard-coded to 50% in NG pools
ADMIN_FEE = 5_000_000_000

# Newton-Raphson iteration cap for D and y
MAX_ITERATIONS = 255

# Default acceptable band for the coin_k per coin0 price
DEFAULT_PEG_MIN = 998 * 10**15  # 0.998
DEFAULT_PEG_MAX = 1005 * 10**15  # 1.005


def abs_diff(a: int, b: int) -> int:
    """Return |a - b|."""
    return a - b if a >= b else b - a


def div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero.

    Python's ``//`` floors, which differs from the contract for negative
    intermediates (e.g. the ``-1`` buffer on a dust swap). Use this wherever a
    signed value can reach a division.
    """
    q = abs(numerator) // abs(denominator)
    return q if (numerator >= 0) == (denominator > 0) else -q


def require(condition: bool, error_cls: type[Exception], message: str) -> None:
    """Raise ``error_cls(message)`` unless ``condition`` holds."""
    if not condition:
        raise error_cls(message)
