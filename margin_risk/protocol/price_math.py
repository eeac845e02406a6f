"""Tick, sqrt-price and decimal-price conversions.

Replicates Uniswap V3 TickMath for the tick <-> sqrtPriceX96 mapping, and
converts sqrt prices to human-readable prices with arbitrary-precision
decimals. Floats are not precise enough near the ends of the sqrt-price
domain (roughly 2^-64 .. 2^64 before the X96 scaling), so every price here is
a ``Decimal``.
"""

import math
from decimal import Decimal, localcontext

from margin_risk.data.constants import (
    DECIMAL_CONTEXT,
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
)

# (bit of |tick|, 1/sqrt(1.0001)^bit as Q128.128)
_TICK_RATIO_FACTORS: tuple[tuple[int, int], ...] = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)

_UINT256_MAX = (1 << 256) - 1
_LOG_SQRT_TICK_BASE = math.log(1.0001) / 2


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric input to ``Decimal``.

    Floats go through ``repr`` so 0.1 stays 0.1 instead of its binary
    expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Compute sqrt(1.0001^tick) * 2^96, rounded up, exactly as TickMath does.

    Raises:
        ValueError: If ``tick`` is outside ``[MIN_TICK, MAX_TICK]``.
    """
    if not MIN_TICK <= tick <= MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = abs(tick)
    if abs_tick & 0x1:
        ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001
    else:
        ratio = 1 << 128
    for bit, factor in _TICK_RATIO_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = _UINT256_MAX // ratio

    # Q128.128 -> Q64.96, rounding up so that get_tick_at_sqrt_ratio is consistent
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_ratio_x96: int) -> int:
    """Greatest tick whose sqrt ratio is <= ``sqrt_ratio_x96``.

    Raises:
        ValueError: If the ratio is outside ``[MIN_SQRT_RATIO, MAX_SQRT_RATIO)``.
    """
    if not MIN_SQRT_RATIO <= sqrt_ratio_x96 < MAX_SQRT_RATIO:
        raise ValueError(
            f"sqrtPriceX96 {sqrt_ratio_x96} out of bounds "
            f"[{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO})"
        )

    # Float estimate is within a couple of ticks; the exact ratios settle it
    log_sqrt_price = math.log(sqrt_ratio_x96) - 96 * math.log(2)
    tick = math.floor(log_sqrt_price / _LOG_SQRT_TICK_BASE)
    tick = max(MIN_TICK, min(MAX_TICK - 1, tick))

    while get_sqrt_ratio_at_tick(tick) > sqrt_ratio_x96:
        tick -= 1
    while get_sqrt_ratio_at_tick(tick + 1) <= sqrt_ratio_x96:
        tick += 1
    return tick


def sqrt_ratio_to_tick(sqrt_price: Decimal | int) -> int:
    """Tick for a (possibly fractional) sqrt price.

    The sqrt price is floored and saturated into the TickMath domain, so
    probes that land past the representable edges map to MIN_TICK or
    MAX_TICK - 1 instead of raising.
    """
    ratio = int(to_decimal(sqrt_price))
    ratio = max(MIN_SQRT_RATIO, min(MAX_SQRT_RATIO - 1, ratio))
    return get_tick_at_sqrt_ratio(ratio)


def sqrt_ratio_to_price(
    sqrt_price: Decimal | int, decimals0: int, decimals1: int
) -> Decimal:
    """Price of token0 in token1: (sqrtPriceX96 / 2^96)^2 * 10^(decimals0 - decimals1)."""
    with localcontext(DECIMAL_CONTEXT):
        s = to_decimal(sqrt_price)
        q96 = Decimal(Q96)
        return (s * s / (q96 * q96)).scaleb(decimals0 - decimals1)


def price_to_sqrt_ratio(
    price: Decimal | int | float | str, decimals0: int, decimals1: int
) -> Decimal:
    """Inverse of ``sqrt_ratio_to_price``.

    Raises:
        ValueError: If ``price`` is negative.
    """
    with localcontext(DECIMAL_CONTEXT):
        p = to_decimal(price)
        if p < 0:
            raise ValueError(f"Price must be non-negative, got {p}")
        return p.scaleb(decimals1 - decimals0).sqrt() * Decimal(Q96)


def tick_to_price(tick: int, decimals0: int, decimals1: int) -> Decimal:
    """Price of token0 in token1 at ``tick``."""
    return sqrt_ratio_to_price(get_sqrt_ratio_at_tick(tick), decimals0, decimals1)


def price_to_tick(
    price: Decimal | int | float | str, decimals0: int, decimals1: int
) -> int:
    """Greatest tick at or below ``price`` (saturated to the TickMath domain)."""
    return sqrt_ratio_to_tick(price_to_sqrt_ratio(price, decimals0, decimals1))
