"""Peg solvers (AMO actions) on top of a StableSwapEngine.

PegSolver sizes a swap, one-sided deposit or one-coin withdrawal so that the
pool's coin_k per coin0 price reaches a target or stays inside a peg band. It
holds an engine and only ever touches it through its public operations:
every candidate amount is evaluated inside engine.speculate(), so the engine
is in exactly the same state when a solve returns as when it started.

Three search shapes cover the nine routines:
- target crossing: minimal amount that moves the price to (or past) a target
- peg clamp: maximal amount (up to a desired one) that keeps the price in band
- output driven: maximal output (up to a desired one) whose required input
  keeps the price in band
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from amo.pool.engine import StableSwapEngine
from amo.pool.errors import RangeError, StableSwapError, ValidationError

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

logger = structlog.get_logger()


@dataclass(frozen=True)
class _Trial:
    """What a speculative action produced before it was rolled back.

    Attributes:
        price: coin_k per coin0 after the action
        amount_out: Return value of the action (dy, LP minted or coin out)
        amount_in: Input used, for output-driven searches
    """

    price: int
    amount_out: int
    amount_in: int = 0


class PegSolver:
    """Sizes AMO actions against a StableSwapEngine.

    The solver never applies the action it returns; the caller does so
    explicitly with the matching engine call.

    Usage:
        solver = PegSolver(engine)
        result = solver.solve_dx_to_target_price(target, max_dx)
        if result.can_fulfill and result.dx > 0:
            engine.exchange(result.i_in, result.j_out, result.dx)
    """

    def __init__(self, engine: StableSwapEngine, config: PegConfig = DEFAULT_PEG_CONFIG) -> None:
        self.engine = engine
        self.config = config

    # =========================================================================
    # Helpers
    # =========================================================================

    def _coin_k(self, coin_k: int | None) -> int:
        k = self.config.coin_k if coin_k is None else coin_k
        if not 1 <= k < self.engine.n_coins:
            raise RangeError(f"coin_k must be in [1, {self.engine.n_coins}), got {k}")
        return k

    def _band(self, peg_min: int | None, peg_max: int | None) -> tuple[int, int]:
        low = self.config.peg_min if peg_min is None else peg_min
        high = self.config.peg_max if peg_max is None else peg_max
        if low > high:
            raise ValidationError(f"peg_min {low} > peg_max {high}")
        return low, high

    def _check_coin(self, index: int, name: str) -> None:
        if not 0 <= index < self.engine.n_coins:
            raise ValidationError(f"{name}: coin index {index} out of range")

    def _one_sided(self, coin_index: int, amount: int) -> list[int]:
        amounts = [0] * self.engine.n_coins
        amounts[coin_index] = amount
        return amounts

    def price(self, coin_k: int | None = None) -> int:
        """Current coin_k per coin0 price, 1e18 scaled."""
        return self.engine.price_coin0_to_k(self._coin_k(coin_k))

    def _trial(self, action: str, amount: int, apply: Callable[[int], int], k: int) -> _Trial | None:
        """Apply an action speculatively and measure the price it leaves behind.

        Returns None when the action (or the price measurement) fails at this
        amount; the engine is restored either way.
        """
        with self.engine.speculate():
            try:
                amount_out = apply(amount)
                return _Trial(price=self.engine.price_coin0_to_k(k), amount_out=amount_out, amount_in=amount)
            except (StableSwapError, ArithmeticError) as e:
                logger.debug("peg_probe_failed", action=action, amount=amount, error=str(e))
                return None

    def _quote(self, action: str, amount: int, quote: Callable[[int], int]) -> int | None:
        """Evaluate a pure quote; None when it fails at this amount."""
        with self.engine.speculate():
            try:
                return quote(amount)
            except (StableSwapError, ArithmeticError) as e:
                logger.debug("peg_quote_failed", action=action, amount=amount, error=str(e))
                return None

    # =========================================================================
    # Target crossing
    # =========================================================================

    def _cross_target(
        self,
        action: str,
        price: int,
        target: int,
        max_amount: int,
        k: int,
        apply: Callable[[int], int],
    ) -> tuple[Crossing[_Trial], PriceOutput]:
        """Minimal amount of `apply` that moves the price to the target side."""
        if price > target:

            def is_past(trial: _Trial) -> bool:
                return trial.price <= target

        else:

            def is_past(trial: _Trial) -> bool:
                return trial.price >= target

        crossing = find_min_crossing(
            lambda amount: self._trial(action, amount, apply, k),
            is_past,
            max_amount,
        )
        if crossing.reached:
            achievable = target
        else:
            achievable = crossing.value.price if crossing.value is not None else price
        price_output = PriceOutput(current_price=price, target_price=target, achievable_price=achievable)

        if crossing.reached:
            logger.debug(
                "peg_target_solved",
                action=action,
                amount=crossing.amount,
                current_price=price,
                target_price=target,
                achievable_price=achievable,
            )
        else:
            logger.info(
                "peg_target_unreachable",
                action=action,
                max_amount=max_amount,
                current_price=price,
                target_price=target,
                achievable_price=achievable,
            )
        return crossing, price_output

    def solve_dx_to_target_price(
        self,
        target_price: int,
        max_dx: int,
        coin_k: int | None = None,
    ) -> SwapTargetResult:
        """Smallest swap that brings the coin_k per coin0 price to target_price.

        Direction follows the current price: above target means coin0 is
        overvalued, so coin0 is sold for coin_k; below target means coin_k is
        sold for coin0.

        Args:
            target_price: Target coin_k per coin0 price (1e18 scaled)
            max_dx: Largest swap to consider
            coin_k: Coin measured against coin0 (default: config.coin_k)

        Returns:
            SwapTargetResult; achievable_price equals target_price when the
            target is reached. Otherwise dx is max_dx, can_fulfill is False
            and achievable_price is the price at max_dx.

        Raises:
            RangeError: If coin_k is 0 or out of range
        """
        k = self._coin_k(coin_k)
        price = self.engine.price_coin0_to_k(k)

        if price == target_price:
            return SwapTargetResult(
                dx=0,
                i_in=0,
                j_out=k,
                can_fulfill=True,
                price_output=PriceOutput(price, target_price, price),
            )

        i_in, j_out = (0, k) if price > target_price else (k, 0)
        crossing, price_output = self._cross_target(
            "exchange",
            price,
            target_price,
            max_dx,
            k,
            lambda dx: self.engine.exchange(i_in, j_out, dx),
        )
        return SwapTargetResult(
            dx=crossing.amount,
            i_in=i_in,
            j_out=j_out,
            can_fulfill=crossing.reached,
            price_output=price_output,
        )

    def solve_one_sided_add_to_target_price(
        self,
        target_price: int,
        max_amount: int,
        coin_k: int | None = None,
    ) -> AddTargetResult:
        """Smallest single-coin deposit that brings the price to target_price.

        Price above target: deposit coin0 (more coin0 supply pushes its price
        down). Price below target: deposit coin_k.
        """
        k = self._coin_k(coin_k)
        price = self.engine.price_coin0_to_k(k)

        if price == target_price:
            return AddTargetResult(
                amount=0,
                coin_index=0,
                can_fulfill=True,
                price_output=PriceOutput(price, target_price, price),
            )

        coin_index = 0 if price > target_price else k
        crossing, price_output = self._cross_target(
            "add_liquidity",
            price,
            target_price,
            max_amount,
            k,
            lambda amount: self.engine.add_liquidity(self._one_sided(coin_index, amount)),
        )
        return AddTargetResult(
            amount=crossing.amount,
            coin_index=coin_index,
            can_fulfill=crossing.reached,
            price_output=price_output,
        )

    def solve_one_sided_remove_to_target_price(
        self,
        target_price: int,
        max_burn_amount: int | None = None,
        coin_k: int | None = None,
    ) -> RemoveTargetResult:
        """Smallest one-coin LP burn that brings the price to target_price.

        Price above target: withdraw coin_k (less coin_k supply pushes the
        coin_k per coin0 price down). Price below target: withdraw coin0.

        Args:
            target_price: Target coin_k per coin0 price (1e18 scaled)
            max_burn_amount: Largest burn to consider (default: total supply)
            coin_k: Coin measured against coin0 (default: config.coin_k)
        """
        k = self._coin_k(coin_k)
        max_burn = self.engine.total_supply if max_burn_amount is None else max_burn_amount
        price = self.engine.price_coin0_to_k(k)

        if price == target_price:
            return RemoveTargetResult(
                burn_amount=0,
                coin_index=0,
                token_out=0,
                can_fulfill=True,
                price_output=PriceOutput(price, target_price, price),
            )

        coin_index = k if price > target_price else 0
        crossing, price_output = self._cross_target(
            "remove_liquidity_one_coin",
            price,
            target_price,
            max_burn,
            k,
            lambda burn: self.engine.remove_liquidity_one_coin(burn, coin_index),
        )
        token_out = crossing.value.amount_out if crossing.value is not None else 0
        return RemoveTargetResult(
            burn_amount=crossing.amount,
            coin_index=coin_index,
            token_out=token_out,
            can_fulfill=crossing.reached,
            price_output=price_output,
        )

    # =========================================================================
    # Peg clamp
    # =========================================================================

    def _clamp_to_band(
        self,
        action: str,
        desired: int,
        band: tuple[int, int],
        k: int,
        apply: Callable[[int], int],
    ) -> tuple[Clamp[_Trial], int]:
        """Largest amount of `apply` up to desired that keeps the price in band.

        Returns the clamp outcome and the price after applying its amount.
        """
        low, high = band
        clamp = find_max_within(
            lambda amount: self._trial(action, amount, apply, k),
            lambda trial: low <= trial.price <= high,
            desired,
        )
        price_after = clamp.value.price if clamp.value is not None else self.engine.price_coin0_to_k(k)

        if clamp.constrained:
            logger.debug(
                "peg_clamp_constrained",
                action=action,
                desired=desired,
                max_amount=clamp.amount,
                price_after=price_after,
            )
        return clamp, price_after

    def max_swap_within_peg(
        self,
        desired_dx: int,
        i_in: int,
        j_out: int,
        peg_min: int | None = None,
        peg_max: int | None = None,
        coin_k: int | None = None,
    ) -> PegSwapResult:
        """Largest swap of i_in for j_out, up to desired_dx, that stays in the peg band.

        If desired_dx already lands in [peg_min, peg_max] it is returned
        unchanged with constrained=False.
        """
        k = self._coin_k(coin_k)
        band = self._band(peg_min, peg_max)
        self._check_coin(i_in, "max_swap_within_peg")
        self._check_coin(j_out, "max_swap_within_peg")

        clamp, price_after = self._clamp_to_band(
            "exchange",
            desired_dx,
            band,
            k,
            lambda dx: self.engine.exchange(i_in, j_out, dx),
        )
        return PegSwapResult(max_dx=clamp.amount, constrained=clamp.constrained, price_after=price_after)

    def max_add_liquidity_within_peg(
        self,
        desired_amount: int,
        coin_index: int,
        peg_min: int | None = None,
        peg_max: int | None = None,
        coin_k: int | None = None,
    ) -> PegAddResult:
        """Largest one-sided deposit of coin_index, up to desired_amount, that stays in band."""
        k = self._coin_k(coin_k)
        band = self._band(peg_min, peg_max)
        self._check_coin(coin_index, "max_add_liquidity_within_peg")

        clamp, price_after = self._clamp_to_band(
            "add_liquidity",
            desired_amount,
            band,
            k,
            lambda amount: self.engine.add_liquidity(self._one_sided(coin_index, amount)),
        )
        lp_tokens = clamp.value.amount_out if clamp.value is not None else 0
        return PegAddResult(
            max_amount=clamp.amount,
            constrained=clamp.constrained,
            price_after=price_after,
            lp_tokens=lp_tokens,
        )

    def max_remove_liquidity_within_peg(
        self,
        desired_burn_amount: int,
        coin_index: int,
        peg_min: int | None = None,
        peg_max: int | None = None,
        coin_k: int | None = None,
    ) -> PegRemoveResult:
        """Largest one-coin LP burn, up to desired_burn_amount, that stays in band."""
        k = self._coin_k(coin_k)
        band = self._band(peg_min, peg_max)
        self._check_coin(coin_index, "max_remove_liquidity_within_peg")

        clamp, price_after = self._clamp_to_band(
            "remove_liquidity_one_coin",
            desired_burn_amount,
            band,
            k,
            lambda burn: self.engine.remove_liquidity_one_coin(burn, coin_index),
        )
        token_out = clamp.value.amount_out if clamp.value is not None else 0
        return PegRemoveResult(
            max_burn_amount=clamp.amount,
            constrained=clamp.constrained,
            price_after=price_after,
            token_out=token_out,
        )

    # =========================================================================
    # Output driven
    # =========================================================================

    def _solve_for_output(
        self,
        action: str,
        desired_out: int,
        max_input: int,
        band: tuple[int, int],
        k: int,
        quote: Callable[[int], int],
        apply: Callable[[int], int],
    ) -> tuple[Clamp[_Trial], int]:
        """Largest output up to desired_out whose required input keeps the price in band.

        Inner search: minimal input (<= max_input) whose pure quote reaches a
        candidate output. Outer search: largest candidate output whose input,
        once actually applied, leaves the price inside the band.

        Returns the clamp over outputs (its value carries the input used and
        the actual output) and the price after applying it.
        """
        low, high = band

        def probe(target_out: int) -> _Trial | None:
            needed = find_min_crossing(
                lambda amount: self._quote(action, amount, quote),
                lambda out: out >= target_out,
                max_input,
            )
            if not needed.reached:
                return None
            return self._trial(action, needed.amount, apply, k)

        clamp = find_max_within(probe, lambda trial: low <= trial.price <= high, desired_out)
        price_after = clamp.value.price if clamp.value is not None else self.engine.price_coin0_to_k(k)

        logger.debug(
            "peg_output_solved",
            action=action,
            desired_out=desired_out,
            reachable_out=clamp.amount,
            constrained=clamp.constrained,
            price_after=price_after,
        )
        return clamp, price_after

    def solve_swap_for_output(
        self,
        desired_dy: int,
        i_in: int,
        j_out: int,
        max_dx: int,
        peg_min: int | None = None,
        peg_max: int | None = None,
        coin_k: int | None = None,
    ) -> SwapOutputResult:
        """Swap of i_in sized to receive desired_dy of j_out without leaving the peg band.

        When the full output is out of reach (beyond max_dx or outside the
        band) the largest in-band output is returned with can_fulfill=False.

        Args:
            desired_dy: Amount of j_out wanted
            i_in: Coin to sell
            j_out: Coin to buy
            max_dx: Largest input to consider
            peg_min: Band floor (default: config.peg_min)
            peg_max: Band ceiling (default: config.peg_max)
            coin_k: Coin measured against coin0 (default: config.coin_k)
        """
        k = self._coin_k(coin_k)
        band = self._band(peg_min, peg_max)
        self._check_coin(i_in, "solve_swap_for_output")
        self._check_coin(j_out, "solve_swap_for_output")
        if i_in == j_out:
            raise ValidationError("solve_swap_for_output: same coin")
        price_before = self.engine.price_coin0_to_k(k)

        clamp, price_after = self._solve_for_output(
            "exchange",
            desired_dy,
            max_dx,
            band,
            k,
            lambda dx: self.engine.get_dy(i_in, j_out, dx),
            lambda dx: self.engine.exchange(i_in, j_out, dx),
        )
        trial = clamp.value
        return SwapOutputResult(
            dx=trial.amount_in if trial is not None else 0,
            dy=trial.amount_out if trial is not None else 0,
            can_fulfill=not clamp.constrained,
            price_before=price_before,
            price_after=price_after,
        )

    def solve_add_liquidity_for_lp_out(
        self,
        desired_lp: int,
        coin_index: int,
        max_amount: int,
        peg_min: int | None = None,
        peg_max: int | None = None,
        coin_k: int | None = None,
    ) -> AddOutputResult:
        """One-sided deposit of coin_index sized to mint desired_lp within the peg band."""
        k = self._coin_k(coin_k)
        band = self._band(peg_min, peg_max)
        self._check_coin(coin_index, "solve_add_liquidity_for_lp_out")
        price_before = self.engine.price_coin0_to_k(k)

        clamp, price_after = self._solve_for_output(
            "add_liquidity",
            desired_lp,
            max_amount,
            band,
            k,
            lambda amount: self.engine.calc_token_amount(self._one_sided(coin_index, amount), True),
            lambda amount: self.engine.add_liquidity(self._one_sided(coin_index, amount)),
        )
        trial = clamp.value
        return AddOutputResult(
            amount=trial.amount_in if trial is not None else 0,
            lp_tokens=trial.amount_out if trial is not None else 0,
            can_fulfill=not clamp.constrained,
            price_before=price_before,
            price_after=price_after,
        )

    def solve_remove_liquidity_for_token_out(
        self,
        desired_out: int,
        coin_index: int,
        max_burn_amount: int | None = None,
        peg_min: int | None = None,
        peg_max: int | None = None,
        coin_k: int | None = None,
    ) -> RemoveOutputResult:
        """One-coin LP burn sized to withdraw desired_out of coin_index within the peg band.

        Args:
            desired_out: Amount of coin_index wanted
            coin_index: Coin to withdraw
            max_burn_amount: Largest burn to consider (default: total supply)
        """
        k = self._coin_k(coin_k)
        band = self._band(peg_min, peg_max)
        self._check_coin(coin_index, "solve_remove_liquidity_for_token_out")
        max_burn = self.engine.total_supply if max_burn_amount is None else max_burn_amount
        price_before = self.engine.price_coin0_to_k(k)

        clamp, price_after = self._solve_for_output(
            "remove_liquidity_one_coin",
            desired_out,
            max_burn,
            band,
            k,
            lambda burn: self.engine.calc_withdraw_one_coin(burn, coin_index),
            lambda burn: self.engine.remove_liquidity_one_coin(burn, coin_index),
        )
        trial = clamp.value
        return RemoveOutputResult(
            burn_amount=trial.amount_in if trial is not None else 0,
            token_out=trial.amount_out if trial is not None else 0,
            can_fulfill=not clamp.constrained,
            price_before=price_before,
            price_after=price_after,
        )
