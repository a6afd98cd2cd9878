"""Generic integer root-finders shared by all peg solvers.

Both searches take a probe, a callable mapping a candidate amount to an
observed value (or None when the trial action is infeasible at that amount),
and a predicate over the observed value. Probes are assumed deterministic, so
each amount is evaluated at most once per search.

- find_min_crossing: smallest amount whose value is past a target. Used for
  target-price solves and for inverting a quote (input for a desired output).
- find_max_within: largest amount whose value still satisfies a constraint.
  Used for peg-band clamps.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Crossing(Generic[T]):
    """Outcome of find_min_crossing.

    Attributes:
        amount: Minimal crossing amount when reached, otherwise the largest
            amount evaluated as feasible (the search bound when it is feasible)
        value: Probe value at amount, or None when amount is 0
        reached: True if the target is crossed within the bound
    """

    amount: int
    value: T | None
    reached: bool


@dataclass(frozen=True)
class Clamp(Generic[T]):
    """Outcome of find_max_within.

    Attributes:
        amount: Largest amount found satisfying the constraint (0 if none)
        value: Probe value at amount, or None when amount is 0
        constrained: True if the upper bound itself violated the constraint
    """

    amount: int
    value: T | None
    constrained: bool


def _memoize(probe: Callable[[int], T | None]) -> Callable[[int], T | None]:
    cache: dict[int, T | None] = {}

    def cached(amount: int) -> T | None:
        if amount not in cache:
            cache[amount] = probe(amount)
        return cache[amount]

    return cached


def find_min_crossing(
    probe: Callable[[int], T | None],
    is_past: Callable[[T], bool],
    max_amount: int,
) -> Crossing[T]:
    """Find the minimal amount in [1, max_amount] whose probe value is past a target.

    Algorithm:
        1. Double hi from 1 until the probe crosses, fails, or hi exceeds
           max_amount. Every uncrossed hi raises lo to hi + 1.
        2. If max_amount is feasible and still uncrossed, the target is
           unreachable: return max_amount with reached=False.
        3. Bisect [lo, hi] treating "crossed or infeasible" as the upper side.
        4. If the bisection lands on an infeasible amount, the target lies
           beyond the feasible region: return the last feasible amount.

    Args:
        probe: Maps an amount to an observed value, or None if infeasible
        is_past: True once a value has reached the target side
        max_amount: Inclusive search bound

    Returns:
        Crossing with the minimal amount (reached=True) or the best feasible
        amount (reached=False)
    """
    if max_amount < 1:
        return Crossing(amount=0, value=None, reached=False)

    probe = _memoize(probe)

    def on_far_side(amount: int) -> bool:
        value = probe(amount)
        return value is None or is_past(value)

    lo, hi = 1, 1
    while hi <= max_amount and not on_far_side(hi):
        lo = hi + 1
        hi *= 2

    if hi > max_amount:
        hi = max_amount
        value = probe(max_amount)
        if value is not None and not is_past(value):
            return Crossing(amount=max_amount, value=value, reached=False)

    while lo < hi:
        mid = (lo + hi) // 2
        if on_far_side(mid):
            hi = mid
        else:
            lo = mid + 1

    value = probe(lo)
    if value is not None and is_past(value):
        return Crossing(amount=lo, value=value, reached=True)

    best = lo - 1
    return Crossing(amount=best, value=probe(best) if best > 0 else None, reached=False)


def find_max_within(
    probe: Callable[[int], T | None],
    is_ok: Callable[[T], bool],
    upper: int,
) -> Clamp[T]:
    """Find the maximal amount in [0, upper] whose probe value satisfies is_ok.

    The full upper amount is tried first and returned unconstrained when it
    passes. Otherwise membership is assumed monotone (true then false in
    amount) and [0, upper] is bisected with a high-biased midpoint. Infeasible
    probes count as violations.

    Args:
        probe: Maps an amount to an observed value, or None if infeasible
        is_ok: Constraint on the observed value
        upper: Desired amount (inclusive search bound)

    Returns:
        Clamp with the largest passing amount
    """
    if upper < 1:
        return Clamp(amount=0, value=None, constrained=False)

    probe = _memoize(probe)

    value = probe(upper)
    if value is not None and is_ok(value):
        return Clamp(amount=upper, value=value, constrained=False)

    lo, hi = 0, upper
    while lo < hi:
        mid = (lo + hi + 1) // 2  # Bias high to find maximum
        value = probe(mid)
        if value is not None and is_ok(value):
            lo = mid
        else:
            hi = mid - 1

    return Clamp(amount=lo, value=probe(lo) if lo > 0 else None, constrained=True)
