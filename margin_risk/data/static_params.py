"""Static data provider with a hardcoded representative margin account."""

from decimal import Decimal

from margin_risk.data.constants import (
    USDC,
    USDC_DECIMALS,
    USDC_WETH_POOL,
    WETH,
    WETH_DECIMALS,
)
from margin_risk.data.interfaces import (
    AccountDataProvider,
    Assets,
    Liabilities,
    MarginAccount,
    Token,
    UniswapPosition,
)

STATIC_ACCOUNT_ADDRESS = "0x0000000000000000000000000000000000a10e01"

_USDC_TOKEN = Token(
    symbol=USDC,
    decimals=USDC_DECIMALS,
    address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
)
_WETH_TOKEN = Token(
    symbol=WETH,
    decimals=WETH_DECIMALS,
    address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
)

# 1 USDC = 0.0005 WETH (ETH at 2,000 USDC)
_PRICE = Decimal("0.0005")

# One 0.3% fee-tier position spanning roughly -20% / +25% around the price
_POSITIONS: dict[str, list[UniswapPosition]] = {
    STATIC_ACCOUNT_ADDRESS: [
        UniswapPosition(liquidity=850_000_000_000_000, lower=198060, upper=202560),
    ],
}

_VOLATILITY: dict[str, Decimal] = {
    USDC_WETH_POOL: Decimal("0.05"),
}


def _static_account() -> MarginAccount:
    # Deferred: the protocol math imports this package for its constants
    from margin_risk.protocol.price_math import price_to_sqrt_ratio

    return MarginAccount(
        address=STATIC_ACCOUNT_ADDRESS,
        token0=_USDC_TOKEN,
        token1=_WETH_TOKEN,
        assets=Assets(
            token0_raw=Decimal("5000"),
            token1_raw=Decimal("1"),
            token0_plus=Decimal("1000"),
            token1_plus=Decimal("0.5"),
            uni0=Decimal("4013"),
            uni1=Decimal("2.0066"),
        ),
        liabilities=Liabilities(amount0=Decimal("10000"), amount1=Decimal("0.5")),
        sqrt_price_x96=price_to_sqrt_ratio(_PRICE, USDC_DECIMALS, WETH_DECIMALS),
        include_interest_bearing_as_collateral=False,
        uniswap_pool=USDC_WETH_POOL,
        iv=_VOLATILITY[USDC_WETH_POOL],
    )


class StaticDataProvider(AccountDataProvider):
    """Data provider serving one hardcoded USDC/WETH margin account."""

    def __init__(self) -> None:
        self._accounts = {STATIC_ACCOUNT_ADDRESS: _static_account()}

    def get_margin_account(self, address: str) -> MarginAccount:
        return self._accounts[address]

    def get_uniswap_positions(self, address: str) -> list[UniswapPosition]:
        return list(_POSITIONS[address])

    def get_volatility(self, pool: str) -> Decimal:
        return _VOLATILITY[pool]
