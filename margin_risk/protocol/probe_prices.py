"""Probe prices used to stress-test solvency around a sqrt price."""

from decimal import Decimal, localcontext

from margin_risk.data.constants import DECIMAL_CONTEXT, MAX_SQRT_RATIO, MIN_SQRT_RATIO
from margin_risk.protocol.params import DEFAULT_RISK_PARAMS, RiskParams
from margin_risk.protocol.price_math import to_decimal

_PROBE_FLOOR = Decimal(MIN_SQRT_RATIO + 1)
_PROBE_CEILING = Decimal(MAX_SQRT_RATIO - 1)


def effective_sigma(
    sigma: Decimal | float | str,
    widen: bool = False,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> Decimal:
    """Clamp sigma into [sigma_min, sigma_max] and apply the stress multipliers.

    With ``widen`` the result is additionally scaled by sqrt(widening_hours),
    which can push it past 1 (0.15 * 2 * sqrt(24) ~= 1.47).
    """
    with localcontext(DECIMAL_CONTEXT):
        s = min(max(params.sigma_min, to_decimal(sigma)), params.sigma_max)
        s *= params.sigma_scaler
        if widen:
            s *= Decimal(params.widening_hours).sqrt()
        return s


def compute_probe_prices(
    sqrt_price: Decimal | int,
    sigma: Decimal | float | str,
    widen: bool = False,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> tuple[Decimal, Decimal]:
    """Compute the lower and upper probe sqrt prices.

    a = sqrtPrice * sqrt(1 - sigma'),  b = sqrtPrice * sqrt(1 + sigma')

    When sigma' >= 1 the lower probe price is zero, which saturates to the
    bottom of the TickMath domain like any other out-of-range probe.

    Returns:
        ``(a, b)`` with ``a`` >= MIN_SQRT_RATIO + 1 and ``b`` <= MAX_SQRT_RATIO - 1.
    """
    s = effective_sigma(sigma, widen, params)
    with localcontext(DECIMAL_CONTEXT):
        sqrt_price = to_decimal(sqrt_price)
        lower_factor = 1 - s
        if lower_factor > 0:
            a = sqrt_price * lower_factor.sqrt()
        else:
            a = Decimal(0)
        b = sqrt_price * (1 + s).sqrt()

    a = max(a, _PROBE_FLOOR)
    b = min(b, _PROBE_CEILING)
    return a, b
