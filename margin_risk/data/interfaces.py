"""Margin account data model and the abstract data provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from margin_risk.data.constants import MAX_TICK, MIN_TICK


@dataclass(frozen=True)
class Token:
    """ERC-20 metadata needed to scale raw amounts."""

    symbol: str
    decimals: int
    address: str = ""


@dataclass(frozen=True)
class Assets:
    """Holdings of a margin account, in token units."""

    token0_raw: Decimal  # Wallet balance of token0
    token1_raw: Decimal  # Wallet balance of token1
    token0_plus: Decimal = Decimal(0)  # Interest-bearing (lender share) token0
    token1_plus: Decimal = Decimal(0)  # Interest-bearing (lender share) token1
    uni0: Decimal = Decimal(0)  # Token0 held in Uniswap positions at current price
    uni1: Decimal = Decimal(0)  # Token1 held in Uniswap positions at current price


@dataclass(frozen=True)
class Liabilities:
    """Outstanding debt of a margin account, in token units."""

    amount0: Decimal
    amount1: Decimal


@dataclass(frozen=True)
class UniswapPosition:
    """A concentrated-liquidity position owned by a margin account.

    Bounds are nullable because positions come straight from on-chain reads;
    a position missing either bound, or with a bound outside the TickMath
    range, is malformed and excluded from valuation.
    """

    liquidity: int
    lower: int | None
    upper: int | None

    @property
    def is_malformed(self) -> bool:
        if self.lower is None or self.upper is None:
            return True
        return not (MIN_TICK <= self.lower <= MAX_TICK and MIN_TICK <= self.upper <= MAX_TICK)


@dataclass(frozen=True)
class MarginAccount:
    """Snapshot of a margin account at one price observation."""

    address: str
    token0: Token
    token1: Token
    assets: Assets
    liabilities: Liabilities
    sqrt_price_x96: Decimal
    include_interest_bearing_as_collateral: bool = False
    uniswap_pool: str = ""
    iv: Decimal | None = None  # Last volatility read, if the caller has one


class AccountDataProvider(ABC):
    """Abstract interface for the inputs of the risk engine."""

    @abstractmethod
    def get_margin_account(self, address: str) -> MarginAccount:
        """Get the current snapshot of a margin account."""

    @abstractmethod
    def get_uniswap_positions(self, address: str) -> list[UniswapPosition]:
        """Get the Uniswap positions held by a margin account."""

    @abstractmethod
    def get_volatility(self, pool: str) -> Decimal:
        """Get the volatility estimate (sigma) for a Uniswap pool.

        The value is dimensionless, e.g. 0.05 for 5%. The engine clamps it
        into its own bounds, so providers return the raw oracle reading.
        """
