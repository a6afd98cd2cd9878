"""Peg solver result types.

Plain frozen records returned by PegSolver. None of them holds a reference to
the engine; applying the chosen action is always a separate, explicit call.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceOutput:
    """Price comparison for a target-driven solve (all 1e18 scaled).

    Attributes:
        current_price: coin_k per coin0 before any action
        target_price: The requested price
        achievable_price: target_price when the target is reached (the
            returned amount may move the price slightly past it); otherwise
            the best price reachable within the bound.
    """

    current_price: int
    target_price: int
    achievable_price: int


# =============================================================================
# Target crossing
# =============================================================================


@dataclass(frozen=True)
class SwapTargetResult:
    """Minimal swap that moves the price to (or past) a target."""

    dx: int
    i_in: int
    j_out: int
    can_fulfill: bool
    price_output: PriceOutput


@dataclass(frozen=True)
class AddTargetResult:
    """Minimal one-sided deposit that moves the price to (or past) a target."""

    amount: int
    coin_index: int
    can_fulfill: bool
    price_output: PriceOutput


@dataclass(frozen=True)
class RemoveTargetResult:
    """Minimal one-coin LP burn that moves the price to (or past) a target.

    Attributes:
        token_out: Expected amount of coin_index received for burn_amount
    """

    burn_amount: int
    coin_index: int
    token_out: int
    can_fulfill: bool
    price_output: PriceOutput


# =============================================================================
# Peg clamp
# =============================================================================


@dataclass(frozen=True)
class PegSwapResult:
    """Largest swap (up to the desired amount) that keeps the price in band.

    Attributes:
        constrained: True if the desired amount had to be reduced
    """

    max_dx: int
    constrained: bool
    price_after: int


@dataclass(frozen=True)
class PegAddResult:
    """Largest one-sided deposit that keeps the price in band."""

    max_amount: int
    constrained: bool
    price_after: int
    lp_tokens: int


@dataclass(frozen=True)
class PegRemoveResult:
    """Largest one-coin LP burn that keeps the price in band."""

    max_burn_amount: int
    constrained: bool
    price_after: int
    token_out: int


# =============================================================================
# Output driven
# =============================================================================


@dataclass(frozen=True)
class SwapOutputResult:
    """Swap sized for a desired output of j_out, capped by the peg band.

    Attributes:
        dx: Input of i_in to swap
        dy: Output of j_out that dx yields (may exceed the searched output by
            rounding, never falls short of it)
        can_fulfill: True only if the full desired output fits within peg
    """

    dx: int
    dy: int
    can_fulfill: bool
    price_before: int
    price_after: int


@dataclass(frozen=True)
class AddOutputResult:
    """One-sided deposit sized for a desired LP mint, capped by the peg band."""

    amount: int
    lp_tokens: int
    can_fulfill: bool
    price_before: int
    price_after: int


@dataclass(frozen=True)
class RemoveOutputResult:
    """One-coin LP burn sized for a desired coin output, capped by the peg band.

    Attributes:
        token_out: Largest amount of coin_index obtainable within peg
    """

    burn_amount: int
    token_out: int
    can_fulfill: bool
    price_before: int
    price_after: int
