"""Tests for tick / sqrt-price / price conversions."""

from decimal import Decimal

import numpy as np
import pytest

from margin_risk.data.constants import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
)
from margin_risk.protocol.price_math import (
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    price_to_sqrt_ratio,
    price_to_tick,
    sqrt_ratio_to_price,
    sqrt_ratio_to_tick,
    tick_to_price,
    to_decimal,
)


def _rel_diff(a: Decimal, b: Decimal) -> Decimal:
    return abs(a - b) / abs(b)


class TestSqrtRatioAtTick:
    def test_min_tick(self) -> None:
        assert get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO

    def test_max_tick(self) -> None:
        assert get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_tick_zero_is_q96(self) -> None:
        assert get_sqrt_ratio_at_tick(0) == Q96

    def test_strictly_increasing(self) -> None:
        ticks = [MIN_TICK, -500_000, -1, 0, 1, 500_000, MAX_TICK]
        ratios = [get_sqrt_ratio_at_tick(t) for t in ticks]
        assert ratios == sorted(ratios)
        assert len(set(ratios)) == len(ratios)

    @pytest.mark.parametrize("tick", [MIN_TICK - 1, MAX_TICK + 1])
    def test_out_of_range_raises(self, tick: int) -> None:
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(tick)


class TestTickAtSqrtRatio:
    def test_min_ratio(self) -> None:
        assert get_tick_at_sqrt_ratio(MIN_SQRT_RATIO) == MIN_TICK

    def test_just_below_max_ratio(self) -> None:
        assert get_tick_at_sqrt_ratio(MAX_SQRT_RATIO - 1) == MAX_TICK - 1

    @pytest.mark.parametrize("ratio", [MIN_SQRT_RATIO - 1, MAX_SQRT_RATIO])
    def test_out_of_range_raises(self, ratio: int) -> None:
        with pytest.raises(ValueError):
            get_tick_at_sqrt_ratio(ratio)

    def test_round_trip_spread(self) -> None:
        rng = np.random.default_rng(42)
        ticks = set(np.linspace(MIN_TICK, MAX_TICK - 1, 101).astype(int).tolist())
        ticks.update(rng.integers(MIN_TICK, MAX_TICK, size=200).tolist())
        ticks.update([MIN_TICK, -1, 0, 1, MAX_TICK - 1])
        for tick in ticks:
            assert get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(tick)) == tick

    def test_ratio_just_below_tick_maps_to_previous(self) -> None:
        for tick in (MIN_TICK + 1, -200_000, -1, 0, 1, 200_000, MAX_TICK - 1):
            assert get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(tick) - 1) == tick - 1


class TestSqrtRatioToTick:
    def test_floors_fractional_ratio(self) -> None:
        assert sqrt_ratio_to_tick(Decimal(Q96) + Decimal("0.5")) == 0

    def test_saturates_below_domain(self) -> None:
        assert sqrt_ratio_to_tick(Decimal(0)) == MIN_TICK

    def test_saturates_above_domain(self) -> None:
        assert sqrt_ratio_to_tick(Decimal(MAX_SQRT_RATIO) * 2) == MAX_TICK - 1


class TestPriceConversions:
    def test_unit_price_same_decimals(self) -> None:
        assert sqrt_ratio_to_price(Q96, 18, 18) == 1

    def test_decimal_scaling(self) -> None:
        # 6-decimal token0 against 18-decimal token1
        assert sqrt_ratio_to_price(Q96, 6, 18) == Decimal("1e-12")
        assert sqrt_ratio_to_price(Q96, 18, 6) == Decimal("1e12")

    def test_price_to_sqrt_ratio_unit(self) -> None:
        assert price_to_sqrt_ratio(1, 18, 18) == Q96

    def test_round_trip_usdc_weth(self) -> None:
        price = Decimal("0.0005")
        sqrt_price = price_to_sqrt_ratio(price, 6, 18)
        assert _rel_diff(sqrt_ratio_to_price(sqrt_price, 6, 18), price) < Decimal("1e-50")

    def test_extreme_prices_stay_positive(self) -> None:
        low = sqrt_ratio_to_price(MIN_SQRT_RATIO, 18, 18)
        high = sqrt_ratio_to_price(MAX_SQRT_RATIO, 18, 18)
        # (2^32 / 2^96)^2 = 2^-128 ~ 2.94e-39
        assert Decimal("2.9e-39") < low < Decimal("3e-39")
        assert high > Decimal("3e38")

    def test_negative_price_raises(self) -> None:
        with pytest.raises(ValueError):
            price_to_sqrt_ratio(Decimal("-1"), 18, 18)

    def test_tick_to_price(self) -> None:
        assert tick_to_price(0, 18, 18) == 1
        assert _rel_diff(tick_to_price(1, 18, 18), Decimal("1.0001")) < Decimal("1e-20")

    def test_price_to_tick(self) -> None:
        assert price_to_tick(1, 18, 18) == 0
        # ln(2) / ln(1.0001) = 6931.8
        assert price_to_tick(2, 18, 18) == 6931
        assert price_to_tick(Decimal("0.5"), 18, 18) == -6932

    def test_to_decimal_float_uses_repr(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("0.25") == Decimal("0.25")
        assert to_decimal(3) == Decimal(3)
