"""StableSwap-NG pool replica.

StableSwapEngine owns the pool parameters and the mutable balance/supply
state, and exposes the contract's swap and liquidity operations both as pure
quotes and as mutating calls. Every mutating call computes the complete new
state before assigning any of it, so a failed call never leaves partial state.

Speculative evaluation goes through snapshot()/restore() or, preferably, the
speculate() context manager which restores on every exit path.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from amo.constants import ADMIN_FEE, FEE_DENOMINATOR, PRECISION, abs_diff, div_trunc, require

from . import stable_math
from .errors import (
    ExceedsSupplyError,
    InitialDepositError,
    InvariantError,
    NegativeResultError,
    RangeError,
    SlippageError,
    UnderflowError,
    UnreachableError,
    ValidationError,
)
from .params import PoolParameters, PoolSnapshot, ProportionalWithdrawal


@dataclass(frozen=True)
class _ExchangeQuote:
    dy: int
    balances: list[int]
    admin_balances: list[int]


@dataclass(frozen=True)
class _ImbalanceQuote:
    """Shared result of the deposit and imbalanced-withdrawal fee math."""

    lp_amount: int
    admin_fees: list[int]


@dataclass(frozen=True)
class _WithdrawOneQuote:
    dy: int
    fee: int


class StableSwapEngine:
    """Off-chain replica of a StableSwap-NG pool.

    Attributes:
        params: Immutable pool parameters (shared between clones)
        balances: LP balances excluding admin fees
        admin_balances: Accrued protocol fees per coin
        total_supply: Outstanding LP units
    """

    def __init__(
        self,
        params: PoolParameters,
        balances: Sequence[int],
        total_supply: int,
        admin_balances: Sequence[int] | None = None,
    ) -> None:
        n = params.n_coins
        require(n >= 2, ValidationError, f"pool needs at least 2 coins, got {n}")
        require(len(balances) == n, ValidationError, "balances length != n")
        require(len(params.rates) == n, ValidationError, "rates length != n")
        if admin_balances is None:
            admin_balances = [0] * n
        require(len(admin_balances) == n, ValidationError, "admin_balances length != n")
        require(
            all(b >= 0 for b in balances) and all(a >= 0 for a in admin_balances),
            ValidationError,
            "balances must be non-negative",
        )
        require(total_supply >= 0, ValidationError, "total_supply must be non-negative")
        require(all(r > 0 for r in params.rates), ValidationError, "rates must be positive")

        self.params = params
        self.balances = list(balances)
        self.admin_balances = list(admin_balances)
        self.total_supply = total_supply

    def __repr__(self) -> str:
        return (
            f"StableSwapEngine(n={self.params.n_coins}, balances={self.balances}, "
            f"total_supply={self.total_supply})"
        )

    @property
    def n_coins(self) -> int:
        return self.params.n_coins

    # =========================================================================
    # Snapshot / restore
    # =========================================================================

    def snapshot(self) -> PoolSnapshot:
        """Value copy of balances, admin balances and supply."""
        return PoolSnapshot(
            balances=tuple(self.balances),
            admin_balances=tuple(self.admin_balances),
            total_supply=self.total_supply,
        )

    def restore(self, snap: PoolSnapshot) -> None:
        """Overwrite the current state completely with a snapshot."""
        require(
            len(snap.balances) == self.n_coins and len(snap.admin_balances) == self.n_coins,
            ValidationError,
            "snapshot does not match pool size",
        )
        self.balances = list(snap.balances)
        self.admin_balances = list(snap.admin_balances)
        self.total_supply = snap.total_supply

    def clone(self) -> StableSwapEngine:
        """Independent engine sharing the same (immutable) parameters."""
        return StableSwapEngine(self.params, self.balances, self.total_supply, self.admin_balances)

    @contextlib.contextmanager
    def speculate(self) -> Iterator[StableSwapEngine]:
        """Run trial mutations and roll them back on exit, even on error.

        Usage:
            with engine.speculate():
                engine.exchange(0, 1, dx)
                price = engine.price_coin0_to_k(1)
            # engine state is back to what it was before the block
        """
        snap = self.snapshot()
        try:
            yield self
        finally:
            self.restore(snap)

    # =========================================================================
    # Invariant math
    # =========================================================================

    def xp(self, balances: Sequence[int] | None = None) -> list[int]:
        """Normalized balances (current state unless balances is given)."""
        return stable_math.normalize(self.balances if balances is None else balances, self.params.rates)

    def get_d(self, xp: Sequence[int], amp: int | None = None) -> int:
        return stable_math.get_d(xp, self.params.amp if amp is None else amp)

    def get_y(self, i: int, j: int, x: int, xp: Sequence[int], amp: int, d: int) -> int:
        return stable_math.get_y(i, j, x, xp, amp, d)

    def get_y_d(self, amp: int, i: int, xp: Sequence[int], d: int) -> int:
        return stable_math.get_y_d(amp, i, xp, d)

    def dynamic_fee(self, xpi: int, xpj: int, base_fee: int) -> int:
        return stable_math.dynamic_fee(xpi, xpj, base_fee, self.params.offpeg_fee_multiplier)

    def get_p_relative_to_coin0(self) -> list[int]:
        """Marginal prices [dx0/dx1, dx0/dx2, ...], each 1e18 scaled.

        Raises:
            ValidationError: If the pool is empty (D == 0)
        """
        xp = self.xp()
        d = self.get_d(xp)
        require(d > 0, ValidationError, "price of an empty pool")
        return stable_math.marginal_prices(xp, self.params.amp, d)

    def price_coin0_to_k(self, k: int) -> int:
        """Price of coin0 expressed in coin k (coin_k per coin0), 1e18 scaled.

        Raises:
            RangeError: If k is outside [1, n)
        """
        if not 1 <= k < self.n_coins:
            raise RangeError(f"price_coin0_to_k: k={k} out of range for {self.n_coins} coins")
        coin0_per_k = self.get_p_relative_to_coin0()[k - 1]
        return (PRECISION * PRECISION) // coin0_per_k

    def get_virtual_price(self) -> int:
        """Invariant value per LP unit, 1e18 scaled."""
        require(self.total_supply > 0, ValidationError, "virtual price of an empty pool")
        d = self.get_d(self.xp())
        return (d * PRECISION) // self.total_supply

    def _imbalance_base_fee(self) -> int:
        n = self.n_coins
        return (self.params.fee * n) // (4 * (n - 1))

    def _check_coin(self, i: int, name: str) -> None:
        require(0 <= i < self.n_coins, ValidationError, f"{name}: coin index {i} out of range")

    def _check_amounts(self, amounts: Sequence[int], name: str) -> None:
        require(len(amounts) == self.n_coins, ValidationError, f"{name}: bad amounts length")
        require(all(a >= 0 for a in amounts), ValidationError, f"{name}: negative amount")

    # =========================================================================
    # Exchange
    # =========================================================================

    def _quote_exchange(self, i: int, j: int, dx: int) -> _ExchangeQuote:
        self._check_coin(i, "exchange")
        self._check_coin(j, "exchange")
        require(i != j, ValidationError, "exchange: same coin")
        require(dx > 0, ValidationError, "exchange: dx must be > 0")

        rates = self.params.rates
        amp = self.params.amp

        xp = self.xp()
        d = self.get_d(xp, amp)

        x = xp[i] + (dx * rates[i]) // PRECISION
        y = self.get_y(i, j, x, xp, amp, d)

        # -1 keeps the pool on the safe side of rounding
        dy = xp[j] - y - 1
        fee = self.dynamic_fee((xp[i] + x) // 2, (xp[j] + y) // 2, self.params.fee)
        dy_fee = div_trunc(dy * fee, FEE_DENOMINATOR)

        dy_out = div_trunc((dy - dy_fee) * PRECISION, rates[j])

        admin_fee_xp = div_trunc(dy_fee * ADMIN_FEE, FEE_DENOMINATOR)
        admin_fee = div_trunc(admin_fee_xp * PRECISION, rates[j])

        new_balances = list(self.balances)
        new_admin = list(self.admin_balances)
        new_balances[i] += dx
        new_balances[j] -= dy_out + admin_fee
        if new_balances[j] < 0:
            raise UnderflowError(f"exchange underflow: dx={dx} too large for coin {j}")
        new_admin[j] += admin_fee

        return _ExchangeQuote(dy=dy_out, balances=new_balances, admin_balances=new_admin)

    def get_dy(self, i: int, j: int, dx: int) -> int:
        """Output of coin j for dx of coin i, net of fees."""
        return self._quote_exchange(i, j, dx).dy

    def exchange(self, i: int, j: int, dx: int) -> int:
        """Swap dx of coin i for coin j; returns the amount of coin j sent out."""
        quote = self._quote_exchange(i, j, dx)
        self.balances = quote.balances
        self.admin_balances = quote.admin_balances
        return quote.dy

    def get_dx(self, i: int, j: int, dy: int, max_dx: int) -> int:
        """Minimal dx of coin i that yields at least dy of coin j.

        get_dy is monotonically increasing in dx, so the bound is doubled from
        1 until it covers dy and the bracket is then bisected.

        Raises:
            ValidationError: If dy <= 0
            UnreachableError: If get_dy(max_dx) < dy
        """
        require(dy > 0, ValidationError, "get_dx: dy must be > 0")
        lo, hi = 1, 1

        while hi <= max_dx and self.get_dy(i, j, hi) < dy:
            lo = hi + 1
            hi *= 2
        if hi > max_dx:
            if max_dx < 1 or self.get_dy(i, j, max_dx) < dy:
                raise UnreachableError(f"get_dx: dy={dy} not reachable within max_dx={max_dx}")
            hi = max_dx

        while lo < hi:
            mid = (lo + hi) // 2
            if self.get_dy(i, j, mid) >= dy:
                hi = mid
            else:
                lo = mid + 1
        return lo

    # =========================================================================
    # Deposits
    # =========================================================================

    def _imbalance_fees(
        self,
        old_balances: Sequence[int],
        new_balances: list[int],
        d0: int,
        d1: int,
    ) -> list[int]:
        """Charge the imbalance fee on each coin's deviation from D1/D0 * old.

        Deducts the full fee from new_balances in place and returns the
        admin share of each fee.
        """
        n = self.n_coins
        rates = self.params.rates
        base_fee = self._imbalance_base_fee()
        ys = (d0 + d1) // n

        admin_fees = [0] * n
        for i in range(n):
            ideal = (d1 * old_balances[i]) // d0
            difference = abs_diff(ideal, new_balances[i])

            xs = (rates[i] * (old_balances[i] + new_balances[i])) // PRECISION
            fee = (self.dynamic_fee(xs, ys, base_fee) * difference) // FEE_DENOMINATOR

            admin_fees[i] = (fee * ADMIN_FEE) // FEE_DENOMINATOR
            new_balances[i] -= fee
        return admin_fees

    def _quote_add_liquidity(self, amounts: Sequence[int]) -> _ImbalanceQuote:
        self._check_amounts(amounts, "add_liquidity")
        n = self.n_coins
        amp = self.params.amp
        total_supply = self.total_supply

        old_balances = self.balances
        d0 = self.get_d(self.xp(old_balances), amp)

        new_balances = list(old_balances)
        for i in range(n):
            if amounts[i] > 0:
                new_balances[i] += amounts[i]
            elif total_supply == 0:
                raise InitialDepositError("initial deposit requires all coins")

        d1 = self.get_d(self.xp(new_balances), amp)
        if d1 <= d0:
            raise InvariantError(f"add_liquidity: D1={d1} must be > D0={d0}")

        if total_supply == 0:
            # First LP mints the invariant itself
            return _ImbalanceQuote(lp_amount=d1, admin_fees=[0] * n)

        admin_fees = self._imbalance_fees(old_balances, new_balances, d0, d1)
        d1_adjusted = self.get_d(self.xp(new_balances), amp)
        mint_amount = div_trunc(total_supply * (d1_adjusted - d0), d0)
        return _ImbalanceQuote(lp_amount=mint_amount, admin_fees=admin_fees)

    def add_liquidity(self, amounts: Sequence[int]) -> int:
        """Deposit amounts (one entry per coin); returns LP units minted."""
        quote = self._quote_add_liquidity(amounts)

        new_balances = list(self.balances)
        new_admin = list(self.admin_balances)
        for i in range(self.n_coins):
            # balances exclude the admin share; the LP share of the fee stays in
            new_balances[i] += amounts[i] - quote.admin_fees[i]
            if new_balances[i] < 0:
                raise UnderflowError(f"add_liquidity underflow on coin {i}")
            new_admin[i] += quote.admin_fees[i]

        self.balances = new_balances
        self.admin_balances = new_admin
        self.total_supply += quote.lp_amount
        return quote.lp_amount

    def calc_token_amount(self, amounts: Sequence[int], is_deposit: bool) -> int:
        """LP minted for a deposit, or LP burned for an imbalanced withdrawal."""
        if is_deposit:
            return self._quote_add_liquidity(amounts).lp_amount
        return self._quote_remove_imbalance(amounts).lp_amount

    # =========================================================================
    # Withdrawals
    # =========================================================================

    def remove_liquidity(self, burn_amount: int, claim_admin_fees: bool = False) -> ProportionalWithdrawal:
        """Burn LP for a pro-rata share of every coin. No fee is charged.

        Raises:
            ValidationError: If burn_amount <= 0
            ExceedsSupplyError: If burn_amount > total_supply
        """
        require(burn_amount > 0, ValidationError, "remove_liquidity: burn_amount must be > 0")
        if burn_amount > self.total_supply:
            raise ExceedsSupplyError(
                f"remove_liquidity: burn_amount {burn_amount} > total_supply {self.total_supply}"
            )

        total_supply = self.total_supply
        amounts = tuple((balance * burn_amount) // total_supply for balance in self.balances)

        self.balances = [balance - out for balance, out in zip(self.balances, amounts, strict=True)]
        self.total_supply -= burn_amount

        admin_fees = tuple(self.withdraw_admin_fees()) if claim_admin_fees else (0,) * self.n_coins
        return ProportionalWithdrawal(amounts=amounts, admin_fees=admin_fees)

    def withdraw_admin_fees(self) -> list[int]:
        """Zero the accrued admin balances and return them."""
        claimed = self.admin_balances
        self.admin_balances = [0] * self.n_coins
        return claimed

    def _quote_withdraw_one_coin(self, burn_amount: int, i: int) -> _WithdrawOneQuote:
        require(burn_amount > 0, ValidationError, "calc_withdraw_one_coin: burn_amount must be > 0")
        self._check_coin(i, "calc_withdraw_one_coin")
        if burn_amount > self.total_supply:
            raise ExceedsSupplyError(
                f"calc_withdraw_one_coin: burn_amount {burn_amount} > total_supply {self.total_supply}"
            )

        n = self.n_coins
        amp = self.params.amp
        rates = self.params.rates

        xp = self.xp()
        d0 = self.get_d(xp, amp)
        d1 = d0 - (burn_amount * d0) // self.total_supply
        new_y = self.get_y_d(amp, i, xp, d1)

        base_fee = self._imbalance_base_fee()
        ys = (d0 + d1) // (2 * n)
        xp_reduced = list(xp)

        for j in range(n):
            if j == i:
                dx_expected = (xp[j] * d1) // d0 - new_y
                xavg = (xp[j] + new_y) // 2
            else:
                dx_expected = xp[j] - (xp[j] * d1) // d0
                xavg = xp[j]
            fee = self.dynamic_fee(xavg, ys, base_fee)
            xp_reduced[j] = xp[j] - div_trunc(fee * dx_expected, FEE_DENOMINATOR)

        dy_xp = xp_reduced[i] - self.get_y_d(amp, i, xp_reduced, d1)

        dy_before_fee = div_trunc((xp[i] - new_y) * PRECISION, rates[i])
        dy = div_trunc((dy_xp - 1) * PRECISION, rates[i])
        fee = dy_before_fee - dy

        if dy < 0 or fee < 0:
            raise NegativeResultError(f"calc_withdraw_one_coin: negative result (dy={dy}, fee={fee})")
        return _WithdrawOneQuote(dy=dy, fee=fee)

    def calc_withdraw_one_coin(self, burn_amount: int, i: int) -> int:
        """Amount of coin i received for burning burn_amount LP."""
        return self._quote_withdraw_one_coin(burn_amount, i).dy

    def remove_liquidity_one_coin(self, burn_amount: int, i: int) -> int:
        """Burn LP for coin i only; returns the amount of coin i sent out."""
        quote = self._quote_withdraw_one_coin(burn_amount, i)
        admin_part = (quote.fee * ADMIN_FEE) // FEE_DENOMINATOR

        new_balance = self.balances[i] - (quote.dy + admin_part)
        if new_balance < 0:
            raise UnderflowError(f"remove_liquidity_one_coin underflow on coin {i}")

        self.balances[i] = new_balance
        self.admin_balances[i] += admin_part
        self.total_supply -= burn_amount
        return quote.dy

    def _quote_remove_imbalance(self, amounts: Sequence[int]) -> _ImbalanceQuote:
        self._check_amounts(amounts, "remove_liquidity_imbalance")
        amp = self.params.amp

        old_balances = self.balances
        d0 = self.get_d(self.xp(old_balances), amp)

        new_balances = list(old_balances)
        for i, amount in enumerate(amounts):
            if amount == 0:
                continue
            if new_balances[i] < amount:
                raise UnderflowError(f"imbalanced withdrawal of coin {i} exceeds balance")
            new_balances[i] -= amount

        d1 = self.get_d(self.xp(new_balances), amp)
        admin_fees = self._imbalance_fees(old_balances, new_balances, d0, d1)
        d1_adjusted = self.get_d(self.xp(new_balances), amp)

        # +1 rounds the burn up against the withdrawer
        burn_amount = div_trunc((d0 - d1_adjusted) * self.total_supply, d0) + 1
        if burn_amount <= 1:
            raise InvariantError("remove_liquidity_imbalance: burn amount too small")
        return _ImbalanceQuote(lp_amount=burn_amount, admin_fees=admin_fees)

    def remove_liquidity_imbalance(self, amounts: Sequence[int], max_burn_amount: int | None = None) -> int:
        """Withdraw exact amounts of each coin; returns LP units burned.

        Raises:
            SlippageError: If the burn exceeds max_burn_amount
            ExceedsSupplyError: If the burn exceeds total_supply
        """
        quote = self._quote_remove_imbalance(amounts)

        if max_burn_amount is not None and quote.lp_amount > max_burn_amount:
            raise SlippageError(f"burn amount {quote.lp_amount} > max_burn_amount {max_burn_amount}")
        if quote.lp_amount > self.total_supply:
            raise ExceedsSupplyError(f"burn amount {quote.lp_amount} > total_supply {self.total_supply}")

        new_balances = list(self.balances)
        new_admin = list(self.admin_balances)
        for i in range(self.n_coins):
            new_balances[i] -= amounts[i] + quote.admin_fees[i]
            if new_balances[i] < 0:
                raise UnderflowError(f"remove_liquidity_imbalance underflow on coin {i}")
            new_admin[i] += quote.admin_fees[i]

        self.balances = new_balances
        self.admin_balances = new_admin
        self.total_supply -= quote.lp_amount
        return quote.lp_amount
