"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import (
    BPS_DENOMINATOR,
    MAX_LIQUIDATION_PENALTY_BPS,
    MAX_STABILITY_FEE_BPS,
    PRICE_DECIMALS,
    Role,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    treasury: str = ""
    liquidation_penalty_bps: int = 1000
    stability_fee_bps: int = 0


@dataclass(frozen=True)
class RolesConfig:
    admin: tuple[str, ...] = ()
    manager: tuple[str, ...] = ()
    liquidator: tuple[str, ...] = ()
    oracle_manager: tuple[str, ...] = ()
    minter: tuple[str, ...] = ()
    operator: tuple[str, ...] = ()

    def grants(self) -> dict[Role, tuple[str, ...]]:
        return {role: getattr(self, role.value) for role in Role}


@dataclass(frozen=True)
class CollateralAssetConfig:
    collateral_ratio: int = 15000
    liquidation_threshold: int = 12000
    price_source: str = ""
    active: bool = True


@dataclass(frozen=True)
class FeedConfig:
    heartbeat: int = 3600
    decimals: int = PRICE_DECIMALS
    active: bool = True
    manual_price: int = 0


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    timeout: int = 10
    feed_ids: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)
    feeds: dict[str, FeedConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    roles: RolesConfig = field(default_factory=RolesConfig)
    collaterals: dict[str, CollateralAssetConfig] = field(default_factory=dict)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        treasury=raw.get("treasury", ""),
        liquidation_penalty_bps=int(raw.get("liquidation_penalty_bps", 1000)),
        stability_fee_bps=int(raw.get("stability_fee_bps", 0)),
    )


def _build_roles(raw: dict[str, Any]) -> RolesConfig:
    return RolesConfig(
        **{role.value: tuple(raw.get(role.value) or []) for role in Role}
    )


def _build_collaterals(raw: dict[str, Any]) -> dict[str, CollateralAssetConfig]:
    collaterals: dict[str, CollateralAssetConfig] = {}
    for asset, cfg in raw.items():
        collaterals[asset] = CollateralAssetConfig(
            collateral_ratio=int(cfg.get("collateral_ratio", 15000)),
            liquidation_threshold=int(cfg.get("liquidation_threshold", 12000)),
            price_source=cfg.get("price_source", asset),
            active=bool(cfg.get("active", True)),
        )
    return collaterals


def _build_feeds(raw: dict[str, Any]) -> dict[str, FeedConfig]:
    feeds: dict[str, FeedConfig] = {}
    for asset, cfg in raw.items():
        feeds[asset] = FeedConfig(
            heartbeat=int(cfg.get("heartbeat", 3600)),
            decimals=int(cfg.get("decimals", PRICE_DECIMALS)),
            active=bool(cfg.get("active", True)),
            manual_price=int(cfg.get("manual_price", 0)),
        )
    return feeds


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            timeout=int(pyth_raw.get("timeout", PythConfig.timeout)),
            feed_ids=dict(pyth_raw.get("feed_ids", {})),
        ),
        feeds=_build_feeds(raw.get("feeds", {})),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate engine configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine", {})),
        roles=_build_roles(raw.get("roles", {})),
        collaterals=_build_collaterals(raw.get("collaterals", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.engine.treasury:
        raise ValueError("Engine treasury address must be configured")
    if not cfg.roles.admin:
        raise ValueError("At least one admin must be configured")

    if not 0 <= cfg.engine.liquidation_penalty_bps <= MAX_LIQUIDATION_PENALTY_BPS:
        raise ValueError(
            f"liquidation_penalty_bps must be within 0..{MAX_LIQUIDATION_PENALTY_BPS}"
        )
    if not 0 <= cfg.engine.stability_fee_bps <= MAX_STABILITY_FEE_BPS:
        raise ValueError(
            f"stability_fee_bps must be within 0..{MAX_STABILITY_FEE_BPS}"
        )

    oracle = cfg.price_oracle
    if oracle.provider != "pyth":
        raise ValueError(f"Unknown price oracle provider '{oracle.provider}'")
    if oracle.feeds and not cfg.roles.oracle_manager:
        raise ValueError("Price feeds require at least one oracle_manager")

    for asset, feed in oracle.feeds.items():
        if feed.heartbeat <= 0:
            raise ValueError(f"Feed '{asset}' heartbeat must be positive")
        if feed.decimals < 0:
            raise ValueError(f"Feed '{asset}' decimals must not be negative")
        if feed.manual_price < 0:
            raise ValueError(f"Feed '{asset}' manual_price must not be negative")

    if cfg.collaterals and not cfg.roles.manager:
        raise ValueError("Collaterals require at least one manager")

    for asset, col in cfg.collaterals.items():
        if col.liquidation_threshold < BPS_DENOMINATOR:
            raise ValueError(
                f"Collateral '{asset}' liquidation_threshold must be >= {BPS_DENOMINATOR}"
            )
        if col.collateral_ratio <= col.liquidation_threshold:
            raise ValueError(
                f"Collateral '{asset}' collateral_ratio must exceed liquidation_threshold"
            )
        if col.price_source not in oracle.feeds:
            raise ValueError(
                f"Collateral '{asset}' references unknown price source '{col.price_source}'"
            )
