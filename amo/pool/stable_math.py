"""StableSwap-NG invariant math.

Pure functions over normalized balances (xp). These reproduce the pool
contract's integer arithmetic exactly, including the order in which divisions
truncate; reordering any product or quotient below changes rounding.

IMPORTANT: Newton iterations run on SafeInt so that a zero balance or a
negative intermediate surfaces as ConvergenceError instead of a bogus result.
"""

from __future__ import annotations

from collections.abc import Sequence

from amo.constants import A_PRECISION, FEE_DENOMINATOR, MAX_ITERATIONS, PRECISION
from amo.safe_int import S, SafeInt, SafeIntError

from .errors import ConvergenceError, ValidationError


def normalize(balances: Sequence[int], rates: Sequence[int]) -> list[int]:
    """Scale raw balances to the common 18-decimal basis: rate * balance / 1e18."""
    return [(rate * balance) // PRECISION for rate, balance in zip(rates, balances, strict=True)]


def get_d(xp: Sequence[int], amp: int) -> int:
    """Calculate the StableSwap invariant D using Newton-Raphson iteration.

    Uses the NG parameterization: Ann = A * n with D_P accumulated as
    D^(n+1) / prod(xp) and divided by n^n once at the end.

    Algorithm:
        1. Initial guess: D = sum(xp)
        2. Iterate until |D_new - D_old| <= 1
        3. Max iterations: 255

    Args:
        xp: Normalized balances
        amp: Amplification coefficient (scaled by A_PRECISION)

    Returns:
        The invariant D, or 0 for an empty pool

    Raises:
        ConvergenceError: If iteration doesn't converge or hits a zero balance
    """
    n_coins = len(xp)
    sum_xp = S(sum(xp))
    if sum_xp == 0:
        return 0

    n = S(n_coins)
    ann = S(amp) * n
    n_pow_n = n**n_coins
    d = sum_xp

    try:
        for _ in range(MAX_ITERATIONS):
            d_p = d
            for x in xp:
                d_p = (d_p * d) // x
            d_p = d_p // n_pow_n

            d_prev = d
            numerator = ((ann * sum_xp) // A_PRECISION + d_p * n) * d
            denominator = ((ann - A_PRECISION) * d) // A_PRECISION + S(n_coins + 1) * d_p
            d = numerator // denominator

            if d.within_one(d_prev):
                return d.value
    except SafeIntError as e:
        raise ConvergenceError(f"get_d left the valid domain: {e}") from e

    raise ConvergenceError(f"get_d did not converge after {MAX_ITERATIONS} iterations")


def _solve_y(c: SafeInt, b: SafeInt, d: SafeInt, caller: str) -> int:
    """Shared Newton loop for y^2 + (b - D) y = c, starting from y = D."""
    y = d
    try:
        for _ in range(MAX_ITERATIONS):
            y_prev = y
            y = (y * y + c) // (S(2) * y + b - d)
            if y.within_one(y_prev):
                return y.value
    except SafeIntError as e:
        raise ConvergenceError(f"{caller} left the valid domain: {e}") from e

    raise ConvergenceError(f"{caller} did not converge after {MAX_ITERATIONS} iterations")


def get_y(i: int, j: int, x: int, xp: Sequence[int], amp: int, d: int) -> int:
    """Solve the normalized balance of coin j after coin i is set to x.

    D is held fixed, coin j is excluded from the sum and every other coin
    keeps its value from xp.

    Args:
        i: Index of the coin whose new normalized balance is x
        j: Index of the coin to solve for
        x: New normalized balance of coin i
        xp: Current normalized balances
        amp: Amplification coefficient (scaled by A_PRECISION)
        d: Invariant to preserve

    Returns:
        New normalized balance of coin j

    Raises:
        ValidationError: If i == j or either index is out of range
        ConvergenceError: If iteration doesn't converge
    """
    n_coins = len(xp)
    if i == j:
        raise ValidationError("get_y: same coin")
    if not (0 <= i < n_coins and 0 <= j < n_coins):
        raise ValidationError(f"get_y: index out of range for {n_coins} coins")

    sd = S(d)
    n = S(n_coins)
    ann = S(amp) * n
    sum_others = S(0)
    c = sd

    try:
        for k in range(n_coins):
            if k == i:
                x_k = x
            elif k == j:
                continue
            else:
                x_k = xp[k]
            sum_others = sum_others + x_k
            c = (c * sd) // (S(x_k) * n)

        c = (c * sd * A_PRECISION) // (ann * n)
        b = sum_others + (sd * A_PRECISION) // ann
    except SafeIntError as e:
        raise ConvergenceError(f"get_y left the valid domain: {e}") from e

    return _solve_y(c, b, sd, "get_y")


def get_y_d(amp: int, i: int, xp: Sequence[int], d: int) -> int:
    """Solve coin i's normalized balance for a new invariant d.

    All other coins stay at their xp values. Used when burning LP for a
    single coin, where D shrinks and only one balance moves.

    Raises:
        ValidationError: If i is out of range
        ConvergenceError: If iteration doesn't converge
    """
    n_coins = len(xp)
    if not 0 <= i < n_coins:
        raise ValidationError(f"get_y_d: index {i} out of range for {n_coins} coins")

    sd = S(d)
    n = S(n_coins)
    ann = S(amp) * n
    sum_others = S(0)
    c = sd

    try:
        for k in range(n_coins):
            if k == i:
                continue
            sum_others = sum_others + xp[k]
            c = (c * sd) // (S(xp[k]) * n)

        c = (c * sd * A_PRECISION) // (ann * n)
        b = sum_others + (sd * A_PRECISION) // ann
    except SafeIntError as e:
        raise ConvergenceError(f"get_y_d left the valid domain: {e}") from e

    return _solve_y(c, b, sd, "get_y_d")


def dynamic_fee(xpi: int, xpj: int, base_fee: int, offpeg_fee_multiplier: int) -> int:
    """Scale the base fee up as xpi and xpj diverge.

    Equals base_fee at perfect balance and approaches
    offpeg_fee_multiplier / FEE_DENOMINATOR * base_fee as the pair empties
    on one side. A multiplier <= FEE_DENOMINATOR disables the scaling.
    """
    if offpeg_fee_multiplier <= FEE_DENOMINATOR:
        return base_fee

    xps2 = (xpi + xpj) ** 2
    numerator = offpeg_fee_multiplier * base_fee
    denominator = (
        (offpeg_fee_multiplier - FEE_DENOMINATOR) * 4 * xpi * xpj
    ) // xps2 + FEE_DENOMINATOR
    return numerator // denominator


def marginal_prices(xp: Sequence[int], amp: int, d: int) -> list[int]:
    """Analytic dx0/dx_k for k = 1..n-1, 1e18 scaled (the contract's _get_p).

    This is the instantaneous exchange rate from the invariant's partial
    derivatives, not the result of a finite trade.
    """
    n_coins = len(xp)
    ann = amp * n_coins

    d_r = d // (n_coins**n_coins)
    for x in xp:
        d_r = (d_r * d) // x

    xp0_a = (ann * xp[0]) // A_PRECISION

    prices = []
    for k in range(1, n_coins):
        numerator = PRECISION * (xp0_a + (d_r * xp[0]) // xp[k])
        prices.append(numerator // (xp0_a + d_r))
    return prices
