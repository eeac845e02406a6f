"""JSON snapshots of margin accounts and the provider that serves them.

Snapshots carry every amount and sqrt price as a string so that values wider
than a double (sqrtPriceX96, liquidity) survive the round trip. The layout is::

    {
      "accounts": [
        {"address": "0x..", "token0": {...}, "token1": {...},
         "assets": {...}, "liabilities": {...},
         "sqrt_price_x96": "1771595571142957...",
         "include_interest_bearing_as_collateral": false,
         "uniswap_pool": "0x..", "iv": "0.05",
         "positions": [{"liquidity": "850000000000000", "lower": 198060, "upper": 202560}]}
      ],
      "volatility": {"0x..": "0.05"}
    }
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from margin_risk.data.interfaces import (
    AccountDataProvider,
    Assets,
    Liabilities,
    MarginAccount,
    Token,
    UniswapPosition,
)

logger = logging.getLogger(__name__)

_ASSET_FIELDS = ("token0_raw", "token1_raw", "token0_plus", "token1_plus", "uni0", "uni1")


def _optional_tick(value: Any) -> int | None:
    return None if value is None else int(value)


def account_to_dict(account: MarginAccount) -> dict[str, Any]:
    """Serialize an account to JSON-safe primitives."""
    return {
        "address": account.address,
        "token0": {
            "symbol": account.token0.symbol,
            "decimals": account.token0.decimals,
            "address": account.token0.address,
        },
        "token1": {
            "symbol": account.token1.symbol,
            "decimals": account.token1.decimals,
            "address": account.token1.address,
        },
        "assets": {name: str(getattr(account.assets, name)) for name in _ASSET_FIELDS},
        "liabilities": {
            "amount0": str(account.liabilities.amount0),
            "amount1": str(account.liabilities.amount1),
        },
        "sqrt_price_x96": str(account.sqrt_price_x96),
        "include_interest_bearing_as_collateral": account.include_interest_bearing_as_collateral,
        "uniswap_pool": account.uniswap_pool,
        "iv": None if account.iv is None else str(account.iv),
    }


def account_from_dict(data: dict[str, Any]) -> MarginAccount:
    """Parse an account produced by ``account_to_dict``.

    Missing interest-bearing and Uniswap balances default to zero.

    Raises:
        KeyError: If a required field is absent.
        decimal.InvalidOperation: If an amount is not numeric.
    """
    assets = data["assets"]
    iv = data.get("iv")
    return MarginAccount(
        address=data["address"],
        token0=Token(**data["token0"]),
        token1=Token(**data["token1"]),
        assets=Assets(**{name: Decimal(str(assets.get(name, "0"))) for name in _ASSET_FIELDS}),
        liabilities=Liabilities(
            amount0=Decimal(str(data["liabilities"]["amount0"])),
            amount1=Decimal(str(data["liabilities"]["amount1"])),
        ),
        sqrt_price_x96=Decimal(str(data["sqrt_price_x96"])),
        include_interest_bearing_as_collateral=bool(
            data.get("include_interest_bearing_as_collateral", False)
        ),
        uniswap_pool=data.get("uniswap_pool", ""),
        iv=None if iv is None else Decimal(str(iv)),
    )


def positions_to_dicts(positions: list[UniswapPosition]) -> list[dict[str, Any]]:
    return [
        {"liquidity": str(p.liquidity), "lower": p.lower, "upper": p.upper}
        for p in positions
    ]


def positions_from_dicts(data: list[dict[str, Any]]) -> list[UniswapPosition]:
    """Parse positions; absent bounds stay ``None`` for the engine to skip."""
    return [
        UniswapPosition(
            liquidity=int(item["liquidity"]),
            lower=_optional_tick(item.get("lower")),
            upper=_optional_tick(item.get("upper")),
        )
        for item in data
    ]


class SnapshotDataProvider(AccountDataProvider):
    """Data provider reading accounts from a JSON snapshot file.

    Parameters
    ----------
    path : str | Path
        Location of the snapshot file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        raw = json.loads(self._path.read_text())

        self._accounts: dict[str, MarginAccount] = {}
        self._positions: dict[str, list[UniswapPosition]] = {}
        for entry in raw.get("accounts", []):
            account = account_from_dict(entry)
            self._accounts[account.address] = account
            self._positions[account.address] = positions_from_dicts(entry.get("positions", []))

        self._volatility = {
            pool: Decimal(str(sigma)) for pool, sigma in raw.get("volatility", {}).items()
        }
        logger.info("Loaded %d margin accounts from %s", len(self._accounts), self._path)

    def get_margin_account(self, address: str) -> MarginAccount:
        return self._accounts[address]

    def get_uniswap_positions(self, address: str) -> list[UniswapPosition]:
        return list(self._positions.get(address, []))

    def get_volatility(self, pool: str) -> Decimal:
        if pool in self._volatility:
            return self._volatility[pool]
        # Fall back to the last reading stored on an account of that pool
        for account in self._accounts.values():
            if account.uniswap_pool == pool and account.iv is not None:
                return account.iv
        raise KeyError(pool)


def write_snapshot(
    path: str | Path,
    accounts: list[tuple[MarginAccount, list[UniswapPosition]]],
    volatility: dict[str, Decimal] | None = None,
) -> None:
    """Write accounts and their positions to a snapshot file."""
    entries = []
    for account, positions in accounts:
        entry = account_to_dict(account)
        entry["positions"] = positions_to_dicts(positions)
        entries.append(entry)
    payload = {
        "accounts": entries,
        "volatility": {pool: str(sigma) for pool, sigma in (volatility or {}).items()},
    }
    Path(path).write_text(json.dumps(payload, indent=2))
