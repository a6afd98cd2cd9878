"""Pydantic models for observed pool state.

A chain reader reports pool parameters and balances as uint256 values, usually
as decimal strings with camelCase keys. These models validate that payload and
turn it into PoolParameters and a StableSwapEngine.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, model_validator

from amo.pool.engine import StableSwapEngine
from amo.pool.params import PoolParameters

# Maximum uint256 value
UINT256_MAX = 2**256 - 1


def validate_uint256(value: Any) -> str:
    """Validate that a value is a valid uint256 decimal string.

    Args:
        value: Value to validate (string or int)

    Returns:
        Valid uint256 as decimal string

    Raises:
        ValueError: If value is not a valid non-negative integer within uint256 range
    """
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool):
        raise ValueError("Uint256 must be string or int, got bool")

    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if int_value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")
    return str(int_value)


# 256-bit unsigned integer as decimal string (validated)
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


class PoolParametersModel(BaseModel):
    """Static pool parameters as read from the contract.

    amp is A_precise() (already multiplied by A_PRECISION), rates is
    stored_rates().
    """

    n_coins: int = Field(alias="nCoins", ge=2)
    amp: Uint256
    fee: Uint256
    offpeg_fee_multiplier: Uint256 = Field(alias="offpegFeeMultiplier")
    rates: list[Uint256]

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _check_rates(self) -> "PoolParametersModel":
        if len(self.rates) != self.n_coins:
            raise ValueError(f"expected {self.n_coins} rates, got {len(self.rates)}")
        if any(int(r) == 0 for r in self.rates):
            raise ValueError("rates must be positive")
        return self

    def to_params(self) -> PoolParameters:
        return PoolParameters(
            n_coins=self.n_coins,
            amp=int(self.amp),
            fee=int(self.fee),
            offpeg_fee_multiplier=int(self.offpeg_fee_multiplier),
            rates=tuple(int(r) for r in self.rates),
        )


class PoolStateModel(BaseModel):
    """Mutable pool state: balances (admin fees excluded) and LP supply."""

    balances: list[Uint256]
    admin_balances: list[Uint256] | None = Field(default=None, alias="adminBalances")
    total_supply: Uint256 = Field(alias="totalSupply")

    model_config = {"populate_by_name": True}


class PoolData(BaseModel):
    """Parameters plus state of one pool, enough to build an engine."""

    params: PoolParametersModel
    state: PoolStateModel

    @model_validator(mode="after")
    def _check_lengths(self) -> "PoolData":
        n = self.params.n_coins
        if len(self.state.balances) != n:
            raise ValueError(f"expected {n} balances, got {len(self.state.balances)}")
        if self.state.admin_balances is not None and len(self.state.admin_balances) != n:
            raise ValueError(f"expected {n} admin balances, got {len(self.state.admin_balances)}")
        return self

    def to_params(self) -> PoolParameters:
        return self.params.to_params()

    def to_engine(self) -> StableSwapEngine:
        """Build a fresh engine holding this state."""
        admin = self.state.admin_balances
        return StableSwapEngine(
            self.to_params(),
            [int(b) for b in self.state.balances],
            int(self.state.total_supply),
            None if admin is None else [int(a) for a in admin],
        )
