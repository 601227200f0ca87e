"""Data models — all frozen (immutable).

State changes replace a stored record with ``dataclasses.replace`` so an
operation either commits every new record or none of them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

BPS_DENOMINATOR = 10_000
PRICE_DECIMALS = 8
MAX_STABILITY_FEE_BPS = 1_000
MAX_LIQUIDATION_PENALTY_BPS = 2_000
MAX_HEALTH_FACTOR = float("inf")


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    LIQUIDATOR = "liquidator"
    ORACLE_MANAGER = "oracle_manager"
    MINTER = "minter"
    OPERATOR = "operator"


class LifecycleState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


@dataclass(frozen=True)
class CollateralConfig:
    """Per-asset collateral parameters and aggregate totals."""

    asset: str
    collateral_ratio: int
    liquidation_threshold: int
    price_source: str
    is_active: bool = True
    deposited_total: int = 0
    minted_total: int = 0
    liquidated_debt: int = 0


@dataclass(frozen=True)
class UserPosition:
    """Collateral and debt held by one user against one asset."""

    user: str
    asset: str
    collateral_amount: int = 0
    minted_amount: int = 0
    last_update_time: int = 0


@dataclass(frozen=True)
class PriceFeedConfig:
    asset: str
    heartbeat: int
    decimals: int = PRICE_DECIMALS
    is_active: bool = True
    manual_fallback: int = 0


@dataclass(frozen=True)
class PriceReading:
    """Raw value reported by an upstream feed.

    ``decimals`` is set when the feed reports its own exponent and then takes
    precedence over the decimals configured for the feed.
    """

    value: int
    updated_at: int
    decimals: int | None = None


@dataclass(frozen=True)
class PriceResolution:
    """Outcome of one step of the price pipeline: a price or a fault."""

    source: str
    price: int = 0
    timestamp: int = 0
    fault: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.fault is None


@dataclass(frozen=True)
class LiquidationRecord:
    """Settlement record emitted for every successful liquidation."""

    user: str
    asset: str
    seized: int
    debt_repaid: int
    penalty: int
    liquidator_share: int
    liquidator: str
    price: int
    seized_value: int
    timestamp: int


@dataclass(frozen=True)
class AuditEvent:
    name: str
    timestamp: int
    fields: tuple[tuple[str, Any], ...] = ()

    def get(self, key: str, default: Any = None) -> Any:
        for k, v in self.fields:
            if k == key:
                return v
        return default
