"""StableSwap pool dataclasses.

Immutable parameter and state records. The live, mutable state belongs to a
single StableSwapEngine; these records are value copies.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PoolParameters:
    """Static parameters of a StableSwap-NG pool.

    Attributes:
        n_coins: Number of coins in the pool (>= 2)
        amp: A_precise() from the contract, already scaled by A_PRECISION.
            NOTE: A=200 on the UI is 20_000 here.
        fee: Base swap fee, 1e10 precision (2_000_000 == 0.02%)
        offpeg_fee_multiplier: Dynamic fee multiplier, 1e10 precision.
            Values <= FEE_DENOMINATOR disable the dynamic fee.
        rates: stored_rates(), one 1e18-scaled multiplier per coin that
            normalizes its decimals to 18
    """

    n_coins: int
    amp: int
    fee: int
    offpeg_fee_multiplier: int
    rates: tuple[int, ...]


@dataclass(frozen=True)
class PoolSnapshot:
    """Point-in-time value copy of the mutable pool state.

    Attributes:
        balances: LP balances, excluding accrued admin fees
        admin_balances: Protocol fees accrued per coin
        total_supply: Outstanding LP token units
    """

    balances: tuple[int, ...]
    admin_balances: tuple[int, ...]
    total_supply: int


@dataclass(frozen=True)
class ProportionalWithdrawal:
    """Result of a balanced remove_liquidity call."""

    amounts: tuple[int, ...]
    admin_fees: tuple[int, ...]
