"""Health sensitivity of a margin account to the pool price."""

from decimal import localcontext

import numpy as np
import pandas as pd

from margin_risk.data.constants import DECIMAL_CONTEXT
from margin_risk.data.interfaces import MarginAccount, UniswapPosition
from margin_risk.position.solvency import evaluate_solvency, token_decimals
from margin_risk.protocol.params import DEFAULT_RISK_PARAMS, RiskParams
from margin_risk.protocol.price_math import (
    price_to_sqrt_ratio,
    sqrt_ratio_to_price,
    to_decimal,
)


def health_sensitivity(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: float,
    price_range: tuple[float, float] = (0.25, 4.0),
    n_points: int = 100,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> pd.DataFrame:
    """Sweep the pool price and record the account's health at each point.

    The grid is geometric in multiples of the current price, so equal steps
    on a log axis.

    Args:
        account: Account snapshot.
        positions: Uniswap positions held by the account.
        sigma: Volatility estimate.
        price_range: (low, high) multiples of the current price.
        n_points: Number of grid points.
        params: Risk parameters.

    Returns:
        DataFrame with columns: price, health, solvent
    """
    low, high = price_range
    if low <= 0 or high <= low:
        raise ValueError(f"price_range must satisfy 0 < low < high, got {price_range}")

    decimals0, decimals1 = token_decimals(account)
    current_price = sqrt_ratio_to_price(account.sqrt_price_x96, decimals0, decimals1)

    multiples = np.geomspace(low, high, n_points)
    prices = []
    healths = []
    solvents = []
    for multiple in multiples:
        with localcontext(DECIMAL_CONTEXT):
            price = current_price * to_decimal(float(multiple))
        sqrt_price = price_to_sqrt_ratio(price, decimals0, decimals1)
        result = evaluate_solvency(account, positions, sqrt_price, sigma, params)
        prices.append(float(price))
        healths.append(float(result.health))
        solvents.append(result.is_solvent)

    return pd.DataFrame({"price": prices, "health": healths, "solvent": solvents})
