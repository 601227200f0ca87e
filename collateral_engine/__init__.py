"""Collateral and liquidation engine for a collateralized stablecoin."""
from .custody import InMemoryCustody
from .models import CollateralConfig, LiquidationRecord, PriceFeedConfig, Role, UserPosition
from .services import CollateralEngine

__all__ = [
    "CollateralConfig",
    "CollateralEngine",
    "InMemoryCustody",
    "LiquidationRecord",
    "PriceFeedConfig",
    "Role",
    "UserPosition",
]
