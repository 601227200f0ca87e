"""Pure ratio arithmetic — no I/O, no state.

All comparisons are done in integer space by cross-multiplying, so
``collateral >= debt * ratio / 10000`` never loses precision to division.
"""
from __future__ import annotations

from .models import BPS_DENOMINATOR, MAX_HEALTH_FACTOR, CollateralConfig


def meets_mint_ratio(cfg: CollateralConfig, collateral: int, debt: int) -> bool:
    """True if ``collateral`` backs ``debt`` at the asset's collateral ratio."""
    if debt == 0:
        return True
    return collateral * BPS_DENOMINATOR >= debt * cfg.collateral_ratio


def above_liquidation_threshold(
    cfg: CollateralConfig, collateral: int, debt: int
) -> bool:
    """True if the position may not be liquidated."""
    if debt == 0:
        return True
    return collateral * BPS_DENOMINATOR >= debt * cfg.liquidation_threshold


def health_factor(collateral: int, debt: int) -> int | float:
    """Collateral to debt in basis points; ``MAX_HEALTH_FACTOR`` without debt."""
    if debt == 0:
        return MAX_HEALTH_FACTOR
    return collateral * BPS_DENOMINATOR // debt


def max_debt(cfg: CollateralConfig, collateral: int) -> int:
    """Largest debt ``collateral`` can carry at the collateral ratio."""
    return collateral * BPS_DENOMINATOR // cfg.collateral_ratio


def min_collateral(cfg: CollateralConfig, debt: int) -> int:
    """Smallest collateral that carries ``debt`` at the collateral ratio."""
    return -(-debt * cfg.collateral_ratio // BPS_DENOMINATOR)


def bps_of(amount: int, bps: int) -> int:
    return amount * bps // BPS_DENOMINATOR
