"""Tests for the static and snapshot data providers and the provider factory."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from unittest.mock import patch

import pytest

from margin_risk.data import create_provider
from margin_risk.data.constants import SNAPSHOT_ENV_VAR, USDC_WETH_POOL
from margin_risk.data.interfaces import AccountDataProvider, UniswapPosition
from margin_risk.data.snapshot import (
    SnapshotDataProvider,
    account_from_dict,
    account_to_dict,
    write_snapshot,
)
from margin_risk.data.static_params import STATIC_ACCOUNT_ADDRESS, StaticDataProvider
from margin_risk.protocol.price_math import sqrt_ratio_to_price


@pytest.fixture
def static_provider() -> StaticDataProvider:
    return StaticDataProvider()


@pytest.fixture
def snapshot_path(tmp_path, static_provider: StaticDataProvider):
    account = static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS)
    positions = static_provider.get_uniswap_positions(STATIC_ACCOUNT_ADDRESS)
    positions.append(UniswapPosition(liquidity=5, lower=None, upper=100))
    path = tmp_path / "snapshot.json"
    write_snapshot(path, [(account, positions)], {USDC_WETH_POOL: Decimal("0.07")})
    return path


class TestStaticDataProvider:
    def test_implements_interface(self, static_provider: StaticDataProvider) -> None:
        assert isinstance(static_provider, AccountDataProvider)

    def test_account_price(self, static_provider: StaticDataProvider) -> None:
        account = static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS)
        price = sqrt_ratio_to_price(account.sqrt_price_x96, 6, 18)
        assert abs(price - Decimal("0.0005")) < Decimal("1e-40")
        assert account.token0.decimals == 6
        assert account.token1.decimals == 18

    def test_positions_are_copies(self, static_provider: StaticDataProvider) -> None:
        positions = static_provider.get_uniswap_positions(STATIC_ACCOUNT_ADDRESS)
        positions.clear()
        assert len(static_provider.get_uniswap_positions(STATIC_ACCOUNT_ADDRESS)) == 1

    def test_volatility(self, static_provider: StaticDataProvider) -> None:
        assert static_provider.get_volatility(USDC_WETH_POOL) == Decimal("0.05")

    def test_unknown_account_raises(self, static_provider: StaticDataProvider) -> None:
        with pytest.raises(KeyError):
            static_provider.get_margin_account("0xdead")


class TestSnapshotSerialization:
    def test_account_dict_round_trip(self, static_provider: StaticDataProvider) -> None:
        account = static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS)
        data = json.loads(json.dumps(account_to_dict(account)))
        assert account_from_dict(data) == account

    def test_missing_optional_balances_default_to_zero(
        self, static_provider: StaticDataProvider
    ) -> None:
        account = static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS)
        data = account_to_dict(account)
        data["assets"] = {"token0_raw": "1", "token1_raw": "2"}
        del data["iv"]
        parsed = account_from_dict(data)
        assert parsed.assets.token0_plus == 0
        assert parsed.assets.uni1 == 0
        assert parsed.iv is None

    def test_missing_required_field_raises(self, static_provider: StaticDataProvider) -> None:
        data = account_to_dict(static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS))
        del data["liabilities"]
        with pytest.raises(KeyError):
            account_from_dict(data)


class TestSnapshotDataProvider:
    def test_round_trip(self, snapshot_path, static_provider: StaticDataProvider) -> None:
        provider = SnapshotDataProvider(snapshot_path)
        assert provider.get_margin_account(STATIC_ACCOUNT_ADDRESS) == (
            static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS)
        )

    def test_positions_keep_missing_bounds(self, snapshot_path) -> None:
        positions = SnapshotDataProvider(snapshot_path).get_uniswap_positions(
            STATIC_ACCOUNT_ADDRESS
        )
        assert len(positions) == 2
        assert positions[0].liquidity == 850_000_000_000_000
        assert positions[1].is_malformed

    def test_volatility_table(self, snapshot_path) -> None:
        assert SnapshotDataProvider(snapshot_path).get_volatility(USDC_WETH_POOL) == Decimal("0.07")

    def test_volatility_falls_back_to_account(self, tmp_path, static_provider) -> None:
        account = static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS)
        path = tmp_path / "snapshot.json"
        write_snapshot(path, [(account, [])])
        provider = SnapshotDataProvider(path)
        assert provider.get_volatility(USDC_WETH_POOL) == account.iv
        with pytest.raises(KeyError):
            provider.get_volatility("0xunknown")

    def test_unknown_address_has_no_positions(self, snapshot_path) -> None:
        assert SnapshotDataProvider(snapshot_path).get_uniswap_positions("0xdead") == []

    def test_logs_account_count(self, snapshot_path, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="margin_risk.data.snapshot"):
            SnapshotDataProvider(snapshot_path)
        assert "Loaded 1 margin accounts" in caplog.text


class TestProviderFactory:
    @patch.dict("os.environ", {}, clear=True)
    def test_default_is_static(self) -> None:
        assert isinstance(create_provider(), StaticDataProvider)

    @patch.dict("os.environ", {}, clear=True)
    def test_explicit_snapshot(self, snapshot_path) -> None:
        assert isinstance(create_provider(str(snapshot_path)), SnapshotDataProvider)

    def test_snapshot_from_env(self, snapshot_path) -> None:
        with patch.dict("os.environ", {SNAPSHOT_ENV_VAR: str(snapshot_path)}):
            assert isinstance(create_provider(), SnapshotDataProvider)

    @patch.dict("os.environ", {SNAPSHOT_ENV_VAR: ""})
    def test_empty_env_var_is_static(self) -> None:
        assert isinstance(create_provider(), StaticDataProvider)

    def test_missing_file_falls_back(self, tmp_path, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            provider = create_provider(str(tmp_path / "absent.json"))
        assert isinstance(provider, StaticDataProvider)
        assert "not found" in caplog.text

    def test_malformed_file_falls_back(self, tmp_path, caplog) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with caplog.at_level(logging.WARNING):
            provider = create_provider(str(path))
        assert isinstance(provider, StaticDataProvider)
        assert "malformed" in caplog.text

    def test_bad_amount_falls_back(self, tmp_path, static_provider) -> None:
        data = account_to_dict(static_provider.get_margin_account(STATIC_ACCOUNT_ADDRESS))
        data["liabilities"]["amount0"] = "lots"
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"accounts": [data]}))
        assert isinstance(create_provider(str(path)), StaticDataProvider)
