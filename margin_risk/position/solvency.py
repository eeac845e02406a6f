"""Margin account solvency at probe prices.

An account is solvent at a probe price when its assets, valued in token1 at
that price, cover its liabilities padded by the 0.5% safety margin and by the
incentive a liquidator would earn on any shortfall. Solvency is checked at
two probes bracketing the evaluation price; the account is solvent only if it
passes both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext

from margin_risk.data.constants import DECIMAL_CONTEXT, HEALTH_NO_LIABILITIES
from margin_risk.data.interfaces import Assets, MarginAccount, UniswapPosition
from margin_risk.protocol.params import DEFAULT_RISK_PARAMS, RiskParams
from margin_risk.protocol.position_valuation import amounts_at_tick, value_at_tick
from margin_risk.protocol.price_math import (
    sqrt_ratio_to_price,
    sqrt_ratio_to_tick,
    to_decimal,
)
from margin_risk.protocol.probe_prices import compute_probe_prices

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetsSnapshot:
    """Asset valuation of an account for one evaluation.

    Attributes:
        fixed0: Token0 not exposed to price risk (wallet, optionally lender shares).
        fixed1: Token1 not exposed to price risk.
        fluid1_a: Uniswap positions valued in token1 at the lower probe.
        fluid1_b: Uniswap positions valued in token1 at the upper probe.
        fluid0_c: Token0 held in Uniswap positions at the evaluation price.
        fluid1_c: Token1 held in Uniswap positions at the evaluation price.
    """

    fixed0: Decimal
    fixed1: Decimal
    fluid1_a: Decimal
    fluid1_b: Decimal
    fluid0_c: Decimal
    fluid1_c: Decimal


@dataclass(frozen=True)
class SolvencyResult:
    """Outcome of a solvency check at both probe prices."""

    price_a: Decimal
    price_b: Decimal
    price_c: Decimal
    assets_a: Decimal
    assets_b: Decimal
    liabilities_a: Decimal
    liabilities_b: Decimal
    solvent_at_lower: bool
    solvent_at_upper: bool
    health: Decimal
    liquidation_incentive: Decimal
    snapshot: AssetsSnapshot

    @property
    def is_solvent(self) -> bool:
        return self.solvent_at_lower and self.solvent_at_upper

    @property
    def surplus_a(self) -> Decimal:
        return self.assets_a - self.liabilities_a

    @property
    def surplus_b(self) -> Decimal:
        return self.assets_b - self.liabilities_b


def token_decimals(account: MarginAccount) -> tuple[int, int]:
    """Token decimals of an account, with negative values clamped to 0."""
    decimals = []
    for token in (account.token0, account.token1):
        if token.decimals < 0:
            logger.warning(
                "Token %s of account %s has negative decimals (%d); treating as 0",
                token.symbol,
                account.address,
                token.decimals,
            )
            decimals.append(0)
        else:
            decimals.append(token.decimals)
    return decimals[0], decimals[1]


def get_assets(
    account: MarginAccount,
    positions: list[UniswapPosition],
    a: Decimal,
    b: Decimal,
    c: Decimal,
) -> AssetsSnapshot:
    """Value the account's holdings at probe prices ``a``/``b`` and price ``c``.

    Interest-bearing balances count as fixed collateral only when the
    account opts in. Malformed positions are logged and skipped.
    """
    decimals0, decimals1 = token_decimals(account)
    tick_a = sqrt_ratio_to_tick(a)
    tick_b = sqrt_ratio_to_tick(b)
    tick_c = sqrt_ratio_to_tick(c)

    held = account.assets
    fluid1_a = Decimal(0)
    fluid1_b = Decimal(0)
    fluid0_c = Decimal(0)
    fluid1_c = Decimal(0)
    with localcontext(DECIMAL_CONTEXT):
        fixed0 = held.token0_raw
        fixed1 = held.token1_raw
        if account.include_interest_bearing_as_collateral:
            fixed0 += held.token0_plus
            fixed1 += held.token1_plus

        for position in positions:
            if position.is_malformed:
                logger.warning(
                    "Skipping malformed Uniswap position of account %s: %s",
                    account.address,
                    position,
                )
                continue

            fluid1_a += value_at_tick(position, tick_a, decimals1)
            fluid1_b += value_at_tick(position, tick_b, decimals1)
            amount0, amount1 = amounts_at_tick(position, tick_c, decimals0, decimals1)
            fluid0_c += amount0
            fluid1_c += amount1

    return AssetsSnapshot(
        fixed0=fixed0,
        fixed1=fixed1,
        fluid1_a=fluid1_a,
        fluid1_b=fluid1_b,
        fluid0_c=fluid0_c,
        fluid1_c=fluid1_c,
    )


def compute_liquidation_incentive(
    assets0: Decimal,
    assets1: Decimal,
    liabilities0: Decimal,
    liabilities1: Decimal,
    price: Decimal,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> Decimal:
    """Reward, in token1, a liquidator would earn covering the account's shortfalls.

    Uses the evaluation price even though the reward is later charged at the
    probe prices.
    """
    rate = params.incentive_rate
    reward = Decimal(0)
    with localcontext(DECIMAL_CONTEXT):
        if liabilities0 > assets0:
            reward += (liabilities0 - assets0) * price * rate
        if liabilities1 > assets1:
            reward += (liabilities1 - assets1) * rate
    return reward


def evaluate_solvency_at(
    account: MarginAccount,
    positions: list[UniswapPosition],
    a: Decimal,
    b: Decimal,
    c: Decimal,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> SolvencyResult:
    """Check solvency at explicit probe sqrt prices ``a``, ``b`` around ``c``."""
    decimals0, decimals1 = token_decimals(account)
    mem = get_assets(account, positions, a, b, c)

    price_a = sqrt_ratio_to_price(a, decimals0, decimals1)
    price_b = sqrt_ratio_to_price(b, decimals0, decimals1)
    price_c = sqrt_ratio_to_price(c, decimals0, decimals1)

    owed = account.liabilities
    incentive = compute_liquidation_incentive(
        mem.fixed0 + mem.fluid0_c,
        mem.fixed1 + mem.fluid1_c,
        owed.amount0,
        owed.amount1,
        price_c,
        params,
    )

    with localcontext(DECIMAL_CONTEXT):
        coeff = params.liability_coeff
        liabilities0 = owed.amount0 * coeff
        liabilities1 = owed.amount1 * coeff + incentive

        assets_a = mem.fluid1_a + mem.fixed1 + mem.fixed0 * price_a
        liabilities_a = liabilities1 + liabilities0 * price_a
        assets_b = mem.fluid1_b + mem.fixed1 + mem.fixed0 * price_b
        liabilities_b = liabilities1 + liabilities0 * price_b

        health_a = assets_a / liabilities_a if liabilities_a > 0 else HEALTH_NO_LIABILITIES
        health_b = assets_b / liabilities_b if liabilities_b > 0 else HEALTH_NO_LIABILITIES

    return SolvencyResult(
        price_a=price_a,
        price_b=price_b,
        price_c=price_c,
        assets_a=assets_a,
        assets_b=assets_b,
        liabilities_a=liabilities_a,
        liabilities_b=liabilities_b,
        solvent_at_lower=assets_a >= liabilities_a,
        solvent_at_upper=assets_b >= liabilities_b,
        health=min(health_a, health_b),
        liquidation_incentive=incentive,
        snapshot=mem,
    )


def evaluate_solvency(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sqrt_price: Decimal | int,
    sigma: Decimal | float | str,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> SolvencyResult:
    """Check whether ``account`` is solvent around ``sqrt_price``.

    Probe prices come from ``sigma``; the window widens when the account
    counts interest-bearing balances as collateral.
    """
    c = to_decimal(sqrt_price)
    a, b = compute_probe_prices(
        c, sigma, account.include_interest_bearing_as_collateral, params
    )
    return evaluate_solvency_at(account, positions, a, b, c, params)


def sum_assets_per_token(assets: Assets) -> tuple[Decimal, Decimal]:
    """Total token0 and token1 held, wallet plus Uniswap exposure."""
    with localcontext(DECIMAL_CONTEXT):
        return assets.token0_raw + assets.uni0, assets.token1_raw + assets.uni1
