"""Risk parameters for solvency checks and threshold search."""

from dataclasses import dataclass
from decimal import Decimal

from margin_risk.data.constants import (
    LIQUIDATION_INCENTIVE,
    MAX_LEVERAGE,
    SEARCH_DOMAIN_MARGIN,
    SEARCH_ITERATIONS,
    SIGMA_B,
    SIGMA_MAX,
    SIGMA_MIN,
    SIGMA_WIDENING_HOURS,
)


@dataclass(frozen=True)
class RiskParams:
    """Protocol risk parameters.

    Attributes:
        sigma_min: Floor applied to the volatility estimate.
        sigma_max: Ceiling applied to the volatility estimate.
        sigma_scaler: Stress multiplier applied after clamping.
        widening_hours: Observation window used when the widening flag is set;
            sigma is scaled by its square root.
        liquidation_incentive: Liquidators earn shortfall / liquidation_incentive.
        max_leverage: Liabilities are padded by 1 / max_leverage.
        domain_margin: Factor keeping the threshold search inside the
            representable sqrt-price domain.
        iterations: Default number of bisection rounds.
    """

    sigma_min: Decimal = SIGMA_MIN
    sigma_max: Decimal = SIGMA_MAX
    sigma_scaler: Decimal = SIGMA_B
    widening_hours: int = SIGMA_WIDENING_HOURS
    liquidation_incentive: int = LIQUIDATION_INCENTIVE
    max_leverage: int = MAX_LEVERAGE
    domain_margin: Decimal = SEARCH_DOMAIN_MARGIN
    iterations: int = SEARCH_ITERATIONS

    @property
    def incentive_rate(self) -> Decimal:
        """Fraction of a shortfall paid to liquidators (0.05)."""
        if self.liquidation_incentive <= 0:
            return Decimal(0)
        return Decimal(1) / Decimal(self.liquidation_incentive)

    @property
    def liability_coeff(self) -> Decimal:
        """Multiplier padding liabilities by the safety margin (1.005)."""
        if self.max_leverage <= 0:
            return Decimal(1)
        return 1 + Decimal(1) / Decimal(self.max_leverage)


DEFAULT_RISK_PARAMS = RiskParams()
