"""Peg solver configuration."""

from dataclasses import dataclass, replace

from amo.constants import DEFAULT_PEG_MAX, DEFAULT_PEG_MIN
from amo.pool.errors import ValidationError


@dataclass(frozen=True)
class PegConfig:
    """Defaults applied when a solver call leaves band or coin arguments unset.

    Attributes:
        peg_min: Lowest acceptable coin_k per coin0 price, 1e18 scaled (default: 0.998)
        peg_max: Highest acceptable coin_k per coin0 price, 1e18 scaled (default: 1.005)
        coin_k: Coin whose price against coin0 is measured (default: 1).
            Coin 0 is the reference and can never be the measured coin.
    """

    peg_min: int = DEFAULT_PEG_MIN
    peg_max: int = DEFAULT_PEG_MAX
    coin_k: int = 1

    def __post_init__(self) -> None:
        if self.peg_min > self.peg_max:
            raise ValidationError(f"peg_min {self.peg_min} > peg_max {self.peg_max}")

    def with_band(self, peg_min: int, peg_max: int) -> "PegConfig":
        """Copy of this config with a different peg band."""
        return replace(self, peg_min=peg_min, peg_max=peg_max)


# Default configuration instance
DEFAULT_PEG_CONFIG = PegConfig()
