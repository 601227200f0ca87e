"""Service modules"""
from .registry import CollateralRegistry
from .ledger import PositionLedger
from .liquidation import LiquidationSettlement
from .engine import CollateralEngine

__all__ = ["CollateralRegistry", "PositionLedger", "LiquidationSettlement", "CollateralEngine"]
