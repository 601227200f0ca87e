"""Liquidation settlement — seize under-collateralized positions."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..access import EngineContext
from ..errors import NoCollateral, NoDebt, PositionHealthy, ValidationError
from ..interfaces.custody import Custody
from ..models import LiquidationRecord, Role
from ..oracles.adapter import PriceOracleAdapter
from .. import ratios
from .ledger import POSITIONS_SCOPE, PositionLedger
from .registry import CollateralRegistry

logger = logging.getLogger(__name__)


class LiquidationSettlement:
    """Close positions below the liquidation threshold.

    The whole collateral balance is seized. A penalty cut of it goes to the
    treasury and the remainder to the liquidator. The outstanding debt is
    written off against the seizure; no stablecoin is burned here.
    """

    def __init__(
        self,
        context: EngineContext,
        registry: CollateralRegistry,
        ledger: PositionLedger,
        oracle: PriceOracleAdapter,
        custody: Custody,
        treasury: str,
    ) -> None:
        self._ctx = context
        self._registry = registry
        self._ledger = ledger
        self._oracle = oracle
        self._custody = custody
        self._treasury = treasury
        self._records: list[LiquidationRecord] = []

    @property
    def treasury(self) -> str:
        return self._treasury

    @property
    def records(self) -> tuple[LiquidationRecord, ...]:
        return tuple(self._records)

    def update_treasury(self, caller: str, treasury: str) -> None:
        self._ctx.require_role(caller, Role.ADMIN)
        if not treasury:
            raise ValidationError("Treasury address must not be empty")
        old, self._treasury = self._treasury, treasury
        self._ctx.events.emit("TreasuryUpdated", old=old, new=treasury)

    async def liquidate(self, caller: str, user: str, asset: str) -> LiquidationRecord:
        with self._ctx.guard.hold(POSITIONS_SCOPE):
            self._ctx.require_not_paused()
            self._ctx.require_role(caller, Role.LIQUIDATOR)
            cfg = self._registry.get(asset)

            before = self._ledger.get_position(user, asset)
            seized = before.collateral_amount
            debt = before.minted_amount
            if seized == 0:
                raise NoCollateral(user, asset)
            if debt == 0:
                raise NoDebt(user, asset)

            price, _ = await self._oracle.get_price(cfg.price_source)
            cfg = self._registry.get(asset)

            if ratios.above_liquidation_threshold(cfg, seized, debt):
                logger.warning(
                    "Liquidation of %s/%s rejected: health factor %s",
                    user, asset, ratios.health_factor(seized, debt),
                )
                raise PositionHealthy(user, asset)

            penalty = ratios.bps_of(seized, self._registry.liquidation_penalty_bps)
            liquidator_share = seized - penalty
            now = self._ctx.now()

            # Zero out and decrement totals before anything leaves custody.
            self._ledger.store(
                replace(before, collateral_amount=0, minted_amount=0, last_update_time=now)
            )
            self._registry.store(
                replace(
                    cfg,
                    deposited_total=cfg.deposited_total - seized,
                    minted_total=cfg.minted_total - debt,
                    liquidated_debt=cfg.liquidated_debt + debt,
                )
            )

            penalty_paid = False
            try:
                if penalty > 0:
                    await self._custody.transfer_out(asset, self._treasury, penalty)
                    penalty_paid = True
                if liquidator_share > 0:
                    await self._custody.transfer_out(asset, caller, liquidator_share)
            except Exception as e:
                logger.error(
                    "Settlement transfer for %s/%s failed, reverting: %s", user, asset, e
                )
                if penalty_paid:
                    # Books are restored only once custody holds the full seizure again
                    await self._custody.transfer_in(asset, self._treasury, penalty)
                self._ledger.store(before)
                self._registry.store(cfg)
                raise

            record = LiquidationRecord(
                user=user,
                asset=asset,
                seized=seized,
                debt_repaid=debt,
                penalty=penalty,
                liquidator_share=liquidator_share,
                liquidator=caller,
                price=price,
                seized_value=seized * price,
                timestamp=now,
            )
            self._records.append(record)
            self._ctx.events.emit(
                "Liquidated",
                user=user,
                asset=asset,
                seized=seized,
                debt_repaid=debt,
                penalty=penalty,
                liquidator=caller,
                price=price,
            )
            return record
