"""Unit tests for data models."""
from __future__ import annotations

from dataclasses import replace

import pytest

from collateral_engine.errors import StalePrice
from collateral_engine.models import (
    AuditEvent,
    CollateralConfig,
    PriceFeedConfig,
    PriceResolution,
    Role,
    UserPosition,
)


class TestUserPosition:
    def test_defaults_are_zero(self) -> None:
        p = UserPosition(user="u", asset="WETH")
        assert p.collateral_amount == 0
        assert p.minted_amount == 0
        assert p.last_update_time == 0

    def test_frozen(self) -> None:
        p = UserPosition(user="u", asset="WETH")
        with pytest.raises(AttributeError):
            p.collateral_amount = 5  # type: ignore[misc]

    def test_replace_leaves_original(self) -> None:
        p = UserPosition(user="u", asset="WETH", collateral_amount=10)
        q = replace(p, collateral_amount=20)
        assert p.collateral_amount == 10
        assert q.collateral_amount == 20


class TestCollateralConfig:
    def test_defaults(self) -> None:
        c = CollateralConfig(
            asset="WETH", collateral_ratio=15000, liquidation_threshold=12000, price_source="ETH"
        )
        assert c.is_active is True
        assert c.deposited_total == 0
        assert c.minted_total == 0
        assert c.liquidated_debt == 0


class TestPriceFeedConfig:
    def test_defaults(self) -> None:
        f = PriceFeedConfig(asset="ETH", heartbeat=3600)
        assert f.decimals == 8
        assert f.is_active is True
        assert f.manual_fallback == 0


class TestPriceResolution:
    def test_ok_without_fault(self) -> None:
        assert PriceResolution(source="primary", price=1, timestamp=2).ok

    def test_not_ok_with_fault(self) -> None:
        r = PriceResolution(source="primary", fault=StalePrice("ETH", 10, 5))
        assert not r.ok


class TestAuditEvent:
    def test_get_field(self) -> None:
        e = AuditEvent(name="Deposited", timestamp=1, fields=(("amount", 5), ("user", "u")))
        assert e.get("amount") == 5
        assert e.get("missing", "x") == "x"


class TestRole:
    def test_values(self) -> None:
        assert Role("liquidator") is Role.LIQUIDATOR
        assert Role.ORACLE_MANAGER.value == "oracle_manager"
