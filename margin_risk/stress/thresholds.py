"""Liquidation thresholds: the prices at which an account stops being solvent.

Each threshold is found by bisecting between the current sqrt price and the
edge of the representable range, running the full two-probe solvency check at
every midpoint. The lower search bisects sqrt prices directly; the upper
search bisects their reciprocals, so both resolve to the same relative
precision near the current price. The search assumes the account is solvent
on a single interval around the current price.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Context, Decimal, localcontext

from margin_risk.data.constants import DECIMAL_CONTEXT, MAX_SQRT_RATIO, MIN_SQRT_RATIO
from margin_risk.data.interfaces import MarginAccount, UniswapPosition
from margin_risk.position.solvency import evaluate_solvency, token_decimals
from margin_risk.protocol.params import DEFAULT_RISK_PARAMS, RiskParams
from margin_risk.protocol.price_math import sqrt_ratio_to_price, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidationThresholds:
    """Price band outside of which an account is liquidatable.

    Attributes:
        lower: Lower threshold price (token0 in token1).
        upper: Upper threshold price.
        lower_sqrt_ratio: Converged sqrtPriceX96 of the lower threshold.
        upper_sqrt_ratio: Converged sqrtPriceX96 of the upper threshold.
        min_sqrt_ratio: Bottom of the searched sqrt-price domain.
        max_sqrt_ratio: Top of the searched sqrt-price domain.
    """

    lower: Decimal
    upper: Decimal
    lower_sqrt_ratio: Decimal
    upper_sqrt_ratio: Decimal
    min_sqrt_ratio: Decimal
    max_sqrt_ratio: Decimal


def search_domain(params: RiskParams = DEFAULT_RISK_PARAMS) -> tuple[Decimal, Decimal]:
    """Sqrt-price bounds of the threshold search, inset from the TickMath edges."""
    with localcontext(DECIMAL_CONTEXT):
        return (
            Decimal(MIN_SQRT_RATIO) * params.domain_margin,
            Decimal(MAX_SQRT_RATIO) / params.domain_margin,
        )


def _same_significant_digits(a: Decimal, b: Decimal, digits: int) -> bool:
    rounding = Context(prec=digits)
    return rounding.plus(a) == rounding.plus(b)


def _bisect(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: Decimal | float | str,
    params: RiskParams,
    low: Decimal,
    high: Decimal,
    reciprocal: bool,
    iterations: int,
    precision: int | None,
) -> Decimal:
    """Bisect ``[low, high]``, liquidatable below the threshold and solvent above.

    With ``reciprocal`` the bounds and midpoints are 1 / sqrt price, and the
    last midpoint is mapped back to a sqrt price.
    """
    search = Decimal(0)
    for _ in range(iterations):
        previous = search
        with localcontext(DECIMAL_CONTEXT):
            search = (low + high) / 2
            sqrt_price = 1 / search if reciprocal else search
        if precision is not None and _same_significant_digits(search, previous, precision):
            break

        if evaluate_solvency(account, positions, sqrt_price, sigma, params).is_solvent:
            high = search
        else:
            low = search

    with localcontext(DECIMAL_CONTEXT):
        return 1 / search if reciprocal else search


def compute_liquidation_thresholds(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: Decimal | float | str,
    params: RiskParams = DEFAULT_RISK_PARAMS,
    iterations: int | None = None,
    precision: int | None = None,
) -> LiquidationThresholds:
    """Find the lower and upper liquidation prices of ``account``.

    If the account is solvent at an edge of the search domain, that edge is
    returned as the threshold without bisecting. Otherwise ``iterations``
    rounds of bisection run between the current price and the edge; the last
    midpoint is the threshold. The upper search runs on reciprocal sqrt
    prices, so either threshold lands within about ``2**-iterations`` of the
    true value relative to the current price.

    Args:
        account: Account snapshot; its sqrt price is the search pivot.
        positions: Uniswap positions held by the account.
        sigma: Volatility estimate used for the probe prices.
        params: Risk parameters.
        iterations: Bisection rounds (defaults to ``params.iterations``).
        precision: If set, stop once consecutive midpoints agree to this many
            significant digits.

    Returns:
        LiquidationThresholds with prices and the converged sqrt ratios.

    Raises:
        ValueError: If ``iterations`` is less than 1.
    """
    if iterations is None:
        iterations = params.iterations
    if iterations < 1:
        raise ValueError(f"iterations must be at least 1, got {iterations}")
    decimals0, decimals1 = token_decimals(account)
    current = to_decimal(account.sqrt_price_x96)
    min_ratio, max_ratio = search_domain(params)

    if evaluate_solvency(account, positions, min_ratio, sigma, params).is_solvent:
        logger.debug("Account %s solvent at domain minimum; skipping lower search", account.address)
        lower_ratio = min_ratio
    else:
        lower_ratio = _bisect(
            account, positions, sigma, params,
            low=min_ratio, high=current, reciprocal=False,
            iterations=iterations, precision=precision,
        )

    if evaluate_solvency(account, positions, max_ratio, sigma, params).is_solvent:
        logger.debug("Account %s solvent at domain maximum; skipping upper search", account.address)
        upper_ratio = max_ratio
    else:
        # Liquidatable at high prices, i.e. at small reciprocals
        with localcontext(DECIMAL_CONTEXT):
            inverse_max, inverse_current = 1 / max_ratio, 1 / current
        upper_ratio = _bisect(
            account, positions, sigma, params,
            low=inverse_max, high=inverse_current, reciprocal=True,
            iterations=iterations, precision=precision,
        )

    return LiquidationThresholds(
        lower=sqrt_ratio_to_price(lower_ratio, decimals0, decimals1),
        upper=sqrt_ratio_to_price(upper_ratio, decimals0, decimals1),
        lower_sqrt_ratio=lower_ratio,
        upper_sqrt_ratio=upper_ratio,
        min_sqrt_ratio=min_ratio,
        max_sqrt_ratio=max_ratio,
    )
