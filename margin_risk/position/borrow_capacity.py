"""Borrow and withdraw headroom for a margin account.

Both limits are derived from the surplus (assets minus padded liabilities)
at the two probe prices, taking the tighter probe.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

from margin_risk.data.constants import DECIMAL_CONTEXT
from margin_risk.data.interfaces import MarginAccount, UniswapPosition
from margin_risk.position.solvency import SolvencyResult, evaluate_solvency
from margin_risk.protocol.params import DEFAULT_RISK_PARAMS, RiskParams


def max_borrows(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: Decimal | float | str,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> tuple[Decimal, Decimal]:
    """Additional token0 and token1 the account could borrow and still be solvent.

    New debt is held as a fixed asset, so only the safety margin on it eats
    into the surplus: surplus * max_leverage can be borrowed.
    Returns zeros for an account that is already insolvent.
    """
    result = evaluate_solvency(account, positions, account.sqrt_price_x96, sigma, params)
    with localcontext(DECIMAL_CONTEXT):
        borrows_a = result.surplus_a * params.max_leverage
        borrows_b = result.surplus_b * params.max_leverage
        borrows0 = min(borrows_a / result.price_a, borrows_b / result.price_b)
        borrows1 = min(borrows_a, borrows_b)
    return max(borrows0, Decimal(0)), max(borrows1, Decimal(0))


def _withdraw1_at(
    surplus: Decimal,
    surplus0_c: Decimal,
    surplus1_c: Decimal,
    coeff: Decimal,
    rate: Decimal,
) -> Decimal:
    amount = surplus
    denom = coeff
    # Withdrawing token1 only moves the incentive when token0 is covered
    if surplus0_c >= 0:
        if surplus1_c <= 0:
            # No token1 padding: every unit withdrawn grows the shortfall
            denom = coeff + rate
        elif surplus1_c < amount:
            # Padding absorbs part of the withdrawal, the rest grows the shortfall
            amount += surplus1_c * rate
            denom = coeff + rate
    return amount / denom


def _withdraw0_at(
    surplus: Decimal,
    price: Decimal,
    price_c: Decimal,
    surplus0_c: Decimal,
    surplus1_c: Decimal,
    coeff: Decimal,
    rate: Decimal,
) -> Decimal:
    amount = surplus
    denom = coeff * price
    # Withdrawing token0 only moves the incentive when token1 is covered
    if surplus1_c >= 0:
        if surplus0_c <= 0:
            denom = coeff * price + price_c * rate
        elif surplus0_c < amount / price:
            amount += surplus0_c * price_c * rate
            denom = coeff * price + price_c * rate
    return amount / denom


def _max_withdraws(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: Decimal | float | str,
    coeff: Decimal,
    params: RiskParams,
) -> tuple[Decimal, Decimal]:
    result: SolvencyResult = evaluate_solvency(
        account, positions, account.sqrt_price_x96, sigma, params
    )
    mem = result.snapshot
    rate = params.incentive_rate

    with localcontext(DECIMAL_CONTEXT):
        surplus0_c = mem.fixed0 + mem.fluid0_c - account.liabilities.amount0
        surplus1_c = mem.fixed1 + mem.fluid1_c - account.liabilities.amount1

        withdraw_a1 = _withdraw1_at(result.surplus_a, surplus0_c, surplus1_c, coeff, rate)
        withdraw_b1 = _withdraw1_at(result.surplus_b, surplus0_c, surplus1_c, coeff, rate)
        withdraw_a0 = _withdraw0_at(
            result.surplus_a, result.price_a, result.price_c, surplus0_c, surplus1_c, coeff, rate
        )
        withdraw_b0 = _withdraw0_at(
            result.surplus_b, result.price_b, result.price_c, surplus0_c, surplus1_c, coeff, rate
        )

    # Liquidatable accounts yield negative headroom
    return (
        max(min(withdraw_a0, withdraw_b0), Decimal(0)),
        max(min(withdraw_a1, withdraw_b1), Decimal(0)),
    )


def max_withdraws(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: Decimal | float | str,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> tuple[Decimal, Decimal]:
    """Token0 and token1 the account could withdraw from its wallet balance.

    Accounts for the liquidation incentive a withdrawal can add once it eats
    through the account's per-token surplus at the current price. Capped at
    the wallet balances actually held.
    """
    withdraw0, withdraw1 = _max_withdraws(account, positions, sigma, Decimal(1), params)
    held = account.assets
    return min(withdraw0, held.token0_raw), min(withdraw1, held.token1_raw)


def max_borrow_and_withdraw(
    account: MarginAccount,
    positions: list[UniswapPosition],
    sigma: Decimal | float | str,
    params: RiskParams = DEFAULT_RISK_PARAMS,
) -> tuple[Decimal, Decimal]:
    """Token0 and token1 the account could borrow and withdraw in one step.

    Borrowed amounts carry the safety margin, so the surplus stretches less
    far than for a plain withdrawal. Not capped by balances held.
    """
    return _max_withdraws(account, positions, sigma, params.liability_coeff, params)
