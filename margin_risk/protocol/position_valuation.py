"""Concentrated-liquidity position valuation.

Token amounts follow the Uniswap V3 LiquidityAmounts library: integer math on
sqrtPriceX96 values, then scaled by token decimals into ``Decimal`` amounts.
"""

from decimal import Decimal, localcontext

from margin_risk.data.constants import DECIMAL_CONTEXT, Q96
from margin_risk.data.interfaces import UniswapPosition
from margin_risk.protocol.price_math import get_sqrt_ratio_at_tick, tick_to_price


def _amount0_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    return ((liquidity << 96) * (sqrt_b - sqrt_a)) // (sqrt_b * sqrt_a)


def _amount1_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    return (liquidity * (sqrt_b - sqrt_a)) // Q96


def _ordered_bounds(position: UniswapPosition) -> tuple[int, int]:
    if position.lower is None or position.upper is None:
        raise ValueError(f"Malformed Uniswap position (missing bound): {position}")
    lower, upper = position.lower, position.upper
    if lower > upper:
        lower, upper = upper, lower
    return lower, upper


def amounts_at_tick(
    position: UniswapPosition, tick: int, decimals0: int, decimals1: int
) -> tuple[Decimal, Decimal]:
    """Token amounts held by ``position`` when the pool is at ``tick``.

    Below the range everything is token0, at or above the upper bound
    everything is token1, and in between the liquidity is split.

    Zero liquidity and zero-width ranges (``lower == upper``) hold nothing and
    return ``(0, 0)``. Reversed bounds are swapped.

    Raises:
        ValueError: If either bound is missing or a tick is out of range.
    """
    lower, upper = _ordered_bounds(position)
    if position.liquidity <= 0 or lower == upper:
        return Decimal(0), Decimal(0)

    liquidity = position.liquidity
    sqrt_lower = get_sqrt_ratio_at_tick(lower)
    sqrt_upper = get_sqrt_ratio_at_tick(upper)

    amount0 = 0
    amount1 = 0
    if tick <= lower:
        amount0 = _amount0_for_liquidity(sqrt_lower, sqrt_upper, liquidity)
    elif tick < upper:
        sqrt_current = get_sqrt_ratio_at_tick(tick)
        amount0 = _amount0_for_liquidity(sqrt_current, sqrt_upper, liquidity)
        amount1 = _amount1_for_liquidity(sqrt_lower, sqrt_current, liquidity)
    else:
        amount1 = _amount1_for_liquidity(sqrt_lower, sqrt_upper, liquidity)

    with localcontext(DECIMAL_CONTEXT):
        return Decimal(amount0).scaleb(-decimals0), Decimal(amount1).scaleb(-decimals1)


def value_at_tick(position: UniswapPosition, tick: int, decimals1: int) -> Decimal:
    """Value of ``position`` at ``tick``, denominated in token1.

    Token0 is converted with the price at ``tick`` before summing, all in
    integer X96 arithmetic. Degenerate positions are worth zero.

    Raises:
        ValueError: If either bound is missing or a tick is out of range.
    """
    lower, upper = _ordered_bounds(position)
    if position.liquidity <= 0 or lower == upper:
        return Decimal(0)

    liquidity = position.liquidity
    sqrt_lower = get_sqrt_ratio_at_tick(lower)
    sqrt_upper = get_sqrt_ratio_at_tick(upper)
    sqrt_current = get_sqrt_ratio_at_tick(tick)

    value0 = 0
    value1 = 0
    if tick <= lower:
        price_x96 = (sqrt_current * sqrt_current) // Q96
        temp = ((liquidity << 96) * (sqrt_upper - sqrt_lower)) // sqrt_upper
        value0 = (price_x96 * temp) // (sqrt_lower << 96)
    elif tick < upper:
        # mulDiv(sqrtPrice, sqrtUpper - sqrtPrice, Q96)
        numerator = (sqrt_current * (sqrt_upper - sqrt_current)) // Q96
        value0 = (liquidity * numerator) // sqrt_upper
        value1 = (liquidity * (sqrt_current - sqrt_lower)) // Q96
    else:
        value1 = (liquidity * (sqrt_upper - sqrt_lower)) // Q96

    with localcontext(DECIMAL_CONTEXT):
        return Decimal(value0 + value1).scaleb(-decimals1)


def composition_at_tick(
    position: UniswapPosition, tick: int, decimals0: int, decimals1: int
) -> tuple[Decimal, Decimal]:
    """Share of the position's value held in token0 and token1 at ``tick``.

    Returns ``(0, 0)`` for a position with no value rather than dividing by
    zero.
    """
    amount0, amount1 = amounts_at_tick(position, tick, decimals0, decimals1)
    price = tick_to_price(tick, decimals0, decimals1)
    with localcontext(DECIMAL_CONTEXT):
        value0 = amount0 * price
        total = value0 + amount1
        if total <= 0:
            return Decimal(0), Decimal(0)
        return value0 / total, amount1 / total
