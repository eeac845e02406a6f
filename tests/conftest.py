"""Shared fixtures for margin account tests."""

from decimal import Decimal
from typing import Callable

import pytest

from margin_risk.data.interfaces import Assets, Liabilities, MarginAccount, Token
from margin_risk.protocol.price_math import price_to_sqrt_ratio

TOKEN_A = Token(symbol="TKA", decimals=18)
TOKEN_B = Token(symbol="TKB", decimals=18)


def build_account(
    fixed0: str = "0",
    fixed1: str = "0",
    liab0: str = "0",
    liab1: str = "0",
    price: str = "1",
    plus0: str = "0",
    plus1: str = "0",
    interest_bearing: bool = False,
    token0: Token = TOKEN_A,
    token1: Token = TOKEN_B,
) -> MarginAccount:
    """Account with the given balances, priced in token1 per token0."""
    return MarginAccount(
        address="0xabc",
        token0=token0,
        token1=token1,
        assets=Assets(
            token0_raw=Decimal(fixed0),
            token1_raw=Decimal(fixed1),
            token0_plus=Decimal(plus0),
            token1_plus=Decimal(plus1),
        ),
        liabilities=Liabilities(amount0=Decimal(liab0), amount1=Decimal(liab1)),
        sqrt_price_x96=price_to_sqrt_ratio(Decimal(price), token0.decimals, token1.decimals),
        include_interest_bearing_as_collateral=interest_bearing,
    )


@pytest.fixture
def make_account() -> Callable[..., MarginAccount]:
    return build_account
