"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Awaitable, Callable

import pytest

from collateral_engine.access import EngineContext, RoleRegistry
from collateral_engine.config import (
    AppConfig,
    CollateralAssetConfig,
    EngineConfig,
    FeedConfig,
    PriceOracleConfig,
    PythConfig,
    RolesConfig,
)
from collateral_engine.custody import InMemoryCustody
from collateral_engine.models import Role, UserPosition
from collateral_engine.services import CollateralEngine

from .factories import (
    ADMIN,
    ALICE,
    BOB,
    ETH_PRICE,
    LIQUIDATOR,
    MANAGER,
    MINTER,
    OPERATOR,
    ORACLE_MANAGER,
    TREASURY,
    FakeClock,
    FakeFeed,
)


# ---------------------------------------------------------------------------
# Collaborator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def feed() -> FakeFeed:
    return FakeFeed()


@pytest.fixture()
def custody() -> InMemoryCustody:
    c = InMemoryCustody()
    c.fund("WETH", ALICE, 1_000)
    c.fund("WETH", BOB, 1_000)
    return c


@pytest.fixture()
def roles() -> RoleRegistry:
    return RoleRegistry(
        {
            Role.ADMIN: [ADMIN],
            Role.MANAGER: [MANAGER],
            Role.ORACLE_MANAGER: [ORACLE_MANAGER],
            Role.LIQUIDATOR: [LIQUIDATOR],
            Role.MINTER: [MINTER],
            Role.OPERATOR: [OPERATOR],
        }
    )


@pytest.fixture()
def context(roles: RoleRegistry, clock: FakeClock) -> EngineContext:
    return EngineContext(auth=roles, clock=clock)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine(
    custody: InMemoryCustody, feed: FakeFeed, roles: RoleRegistry, clock: FakeClock
) -> CollateralEngine:
    """Engine with WETH collateral (150% / 120%) priced by a fresh ETH feed."""
    eng = CollateralEngine(
        custody,
        feed,
        treasury=TREASURY,
        roles=roles,
        liquidation_penalty_bps=1000,
        clock=clock,
    )
    eng.oracle.add_feed(ORACLE_MANAGER, "ETH", heartbeat=3600, decimals=8)
    eng.registry.register_collateral(MANAGER, "WETH", 15000, 12000, "ETH")
    feed.set("ETH", ETH_PRICE, clock.now)
    return eng


@pytest.fixture()
def open_position(
    engine: CollateralEngine,
) -> Callable[[str, int, int], Awaitable[UserPosition]]:
    """Deposit ``collateral`` WETH for ``user`` and record ``debt`` against it."""

    async def _open(user: str, collateral: int, debt: int = 0) -> UserPosition:
        pos = await engine.deposit(OPERATOR, user, "WETH", collateral)
        if debt:
            pos = await engine.record_mint(MINTER, user, "WETH", debt)
        return pos

    return _open


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        engine=EngineConfig(treasury=TREASURY, liquidation_penalty_bps=1000),
        roles=RolesConfig(
            admin=(ADMIN,),
            manager=(MANAGER,),
            liquidator=(LIQUIDATOR,),
            oracle_manager=(ORACLE_MANAGER,),
            minter=(MINTER,),
            operator=(OPERATOR,),
        ),
        collaterals={
            "WETH": CollateralAssetConfig(
                collateral_ratio=15000, liquidation_threshold=12000, price_source="ETH"
            ),
        },
        price_oracle=PriceOracleConfig(
            provider="pyth",
            pyth=PythConfig(feed_ids={"ETH": "0xabc"}),
            feeds={"ETH": FeedConfig(heartbeat=3600, decimals=8, manual_price=1_900 * 10**8)},
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    engine:
      treasury: "0xTREASURY"
      liquidation_penalty_bps: 500
      stability_fee_bps: 100
    roles:
      admin: ["0xADMIN"]
      manager: ["0xMANAGER"]
      oracle_manager: ["0xORACLE"]
      liquidator: ["0xLIQUIDATOR"]
      minter: ["0xSTABLECOIN"]
      operator: ["0xVAULT"]
    collaterals:
      WETH:
        collateral_ratio: 15000
        liquidation_threshold: 12000
        price_source: ETH
      WBTC:
        collateral_ratio: 14000
        liquidation_threshold: 11500
        price_source: BTC
        active: false
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        timeout: 5
        feed_ids: {ETH: "aaa", BTC: "bbb"}
      feeds:
        ETH:
          heartbeat: 3600
          decimals: 8
        BTC:
          heartbeat: 600
          decimals: 6
          manual_price: 6000000000000
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
