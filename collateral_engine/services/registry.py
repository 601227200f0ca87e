"""Collateral registry — per-asset parameters, fee settings and deposited totals."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..access import EngineContext
from ..errors import (
    DuplicateAsset,
    FeeTooHigh,
    InvalidRatios,
    NegativeAmount,
    ThresholdTooLow,
    UnknownAsset,
    UnsupportedAsset,
)
from ..models import (
    BPS_DENOMINATOR,
    MAX_LIQUIDATION_PENALTY_BPS,
    MAX_STABILITY_FEE_BPS,
    CollateralConfig,
    Role,
)

logger = logging.getLogger(__name__)


def _check_ratios(collateral_ratio: int, liquidation_threshold: int) -> None:
    if collateral_ratio <= liquidation_threshold:
        raise InvalidRatios(collateral_ratio, liquidation_threshold)
    if liquidation_threshold < BPS_DENOMINATOR:
        raise ThresholdTooLow(liquidation_threshold)


class CollateralRegistry:
    """Supported collateral assets and the protocol-wide fee settings."""

    def __init__(
        self,
        context: EngineContext,
        liquidation_penalty_bps: int = 1000,
        stability_fee_bps: int = 0,
    ) -> None:
        self._ctx = context
        self._configs: dict[str, CollateralConfig] = {}
        self._assets: list[str] = []
        self.liquidation_penalty_bps = liquidation_penalty_bps
        self.stability_fee_bps = stability_fee_bps

    # ------------------------------------------------------------------
    # Administration (manager only)
    # ------------------------------------------------------------------

    def register_collateral(
        self,
        caller: str,
        asset: str,
        collateral_ratio: int,
        liquidation_threshold: int,
        price_source: str,
    ) -> CollateralConfig:
        """Register ``asset`` as collateral.

        An asset that was registered before and later deactivated is
        re-activated with the new parameters; its totals are kept and it is
        not listed twice.
        """
        self._ctx.require_role(caller, Role.MANAGER)
        existing = self._configs.get(asset)
        if existing is not None and existing.is_active:
            raise DuplicateAsset(asset)
        _check_ratios(collateral_ratio, liquidation_threshold)

        if existing is None:
            cfg = CollateralConfig(
                asset=asset,
                collateral_ratio=collateral_ratio,
                liquidation_threshold=liquidation_threshold,
                price_source=price_source,
            )
            self._assets.append(asset)
        else:
            cfg = replace(
                existing,
                collateral_ratio=collateral_ratio,
                liquidation_threshold=liquidation_threshold,
                price_source=price_source,
                is_active=True,
            )
        self._configs[asset] = cfg

        self._ctx.events.emit(
            "CollateralRegistered",
            asset=asset,
            collateral_ratio=collateral_ratio,
            liquidation_threshold=liquidation_threshold,
            price_source=price_source,
        )
        return cfg

    def update_collateral_ratios(
        self,
        caller: str,
        asset: str,
        collateral_ratio: int,
        liquidation_threshold: int,
    ) -> CollateralConfig:
        self._ctx.require_role(caller, Role.MANAGER)
        cfg = self.get(asset)
        _check_ratios(collateral_ratio, liquidation_threshold)
        cfg = replace(
            cfg,
            collateral_ratio=collateral_ratio,
            liquidation_threshold=liquidation_threshold,
        )
        self._configs[asset] = cfg
        self._ctx.events.emit(
            "CollateralRatiosUpdated",
            asset=asset,
            collateral_ratio=collateral_ratio,
            liquidation_threshold=liquidation_threshold,
        )
        return cfg

    def set_collateral_active(self, caller: str, asset: str, active: bool) -> None:
        self._ctx.require_role(caller, Role.MANAGER)
        cfg = self.get(asset)
        self._configs[asset] = replace(cfg, is_active=active)
        self._ctx.events.emit(
            "CollateralActivated" if active else "CollateralDeactivated",
            asset=asset,
        )

    def update_stability_fee(self, caller: str, bps: int) -> None:
        self._ctx.require_role(caller, Role.MANAGER)
        if bps < 0:
            raise NegativeAmount(bps)
        if bps > MAX_STABILITY_FEE_BPS:
            raise FeeTooHigh("Stability fee", bps, MAX_STABILITY_FEE_BPS)
        old, self.stability_fee_bps = self.stability_fee_bps, bps
        self._ctx.events.emit("StabilityFeeUpdated", old=old, new=bps)

    def update_liquidation_penalty(self, caller: str, bps: int) -> None:
        self._ctx.require_role(caller, Role.MANAGER)
        if bps < 0:
            raise NegativeAmount(bps)
        if bps > MAX_LIQUIDATION_PENALTY_BPS:
            raise FeeTooHigh("Liquidation penalty", bps, MAX_LIQUIDATION_PENALTY_BPS)
        old, self.liquidation_penalty_bps = self.liquidation_penalty_bps, bps
        self._ctx.events.emit("LiquidationPenaltyUpdated", old=old, new=bps)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, asset: str) -> CollateralConfig:
        cfg = self._configs.get(asset)
        if cfg is None:
            raise UnknownAsset(asset)
        return cfg

    def find(self, asset: str) -> CollateralConfig | None:
        return self._configs.get(asset)

    def require_active(self, asset: str) -> CollateralConfig:
        cfg = self._configs.get(asset)
        if cfg is None or not cfg.is_active:
            raise UnsupportedAsset(asset)
        return cfg

    def assets(self) -> tuple[str, ...]:
        return tuple(self._assets)

    def total_collateral_value(self) -> int:
        """Sum of deposited units across all active assets."""
        return sum(
            self._configs[a].deposited_total
            for a in self._assets
            if self._configs[a].is_active
        )

    def store(self, cfg: CollateralConfig) -> None:
        """Commit an updated config. Used by the ledger and settlement."""
        if cfg.asset not in self._configs:
            raise UnknownAsset(cfg.asset)
        self._configs[cfg.asset] = cfg
