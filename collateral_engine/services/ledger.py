"""Position ledger — per-(user, asset) collateral and debt bookkeeping."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..access import EngineContext
from ..errors import (
    ExcessBurn,
    InsufficientCollateral,
    NegativeAmount,
    RatioViolation,
    ZeroAmount,
)
from ..interfaces.custody import Custody
from ..models import CollateralConfig, Role, UserPosition
from ..oracles.adapter import PriceOracleAdapter
from .. import ratios
from .registry import CollateralRegistry

logger = logging.getLogger(__name__)

# Every mutating entry point of the ledger and of liquidation shares one scope,
# so callers must serialize them across all users and assets.
POSITIONS_SCOPE = "positions"


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise NegativeAmount(amount)
    if amount == 0:
        raise ZeroAmount()


class PositionLedger:
    """Deposits, withdrawals and minted-debt accounting for every position."""

    def __init__(
        self,
        context: EngineContext,
        registry: CollateralRegistry,
        oracle: PriceOracleAdapter,
        custody: Custody,
    ) -> None:
        self._ctx = context
        self._registry = registry
        self._oracle = oracle
        self._custody = custody
        self._positions: dict[tuple[str, str], UserPosition] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_position(self, user: str, asset: str) -> UserPosition:
        """Return the stored position, or an implicit zero position."""
        return self._positions.get((user, asset)) or UserPosition(user=user, asset=asset)

    def positions(self, asset: str | None = None) -> tuple[UserPosition, ...]:
        return tuple(
            p for (_, a), p in self._positions.items() if asset is None or a == asset
        )

    def health_factor(self, user: str, asset: str) -> int | float:
        pos = self.get_position(user, asset)
        return ratios.health_factor(pos.collateral_amount, pos.minted_amount)

    def is_liquidatable(self, user: str, asset: str) -> bool:
        pos = self.get_position(user, asset)
        cfg = self._registry.get(asset)
        return pos.minted_amount > 0 and not ratios.above_liquidation_threshold(
            cfg, pos.collateral_amount, pos.minted_amount
        )

    def max_mintable(self, user: str, asset: str) -> int:
        pos = self.get_position(user, asset)
        cfg = self._registry.get(asset)
        return max(0, ratios.max_debt(cfg, pos.collateral_amount) - pos.minted_amount)

    def max_withdrawable(self, user: str, asset: str) -> int:
        pos = self.get_position(user, asset)
        if pos.minted_amount == 0:
            return pos.collateral_amount
        cfg = self._registry.get(asset)
        locked = ratios.min_collateral(cfg, pos.minted_amount)
        return max(0, pos.collateral_amount - locked)

    def store(self, position: UserPosition) -> None:
        """Commit a position record. Used by liquidation settlement."""
        self._positions[(position.user, position.asset)] = position

    def _commit(self, position: UserPosition, cfg: CollateralConfig) -> None:
        self.store(position)
        self._registry.store(cfg)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _enter(self, caller: str, role: Role) -> None:
        self._ctx.require_not_paused()
        self._ctx.require_role(caller, role)

    async def deposit(
        self, caller: str, user: str, asset: str, amount: int
    ) -> UserPosition:
        """Pull ``amount`` from ``user`` into custody, then credit the position."""
        with self._ctx.guard.hold(POSITIONS_SCOPE):
            self._enter(caller, Role.OPERATOR)
            self._registry.require_active(asset)
            _check_amount(amount)

            await self._custody.transfer_in(asset, user, amount)

            cfg = self._registry.get(asset)
            pos = self.get_position(user, asset)
            pos = replace(
                pos,
                collateral_amount=pos.collateral_amount + amount,
                last_update_time=self._ctx.now(),
            )
            self._commit(
                pos, replace(cfg, deposited_total=cfg.deposited_total + amount)
            )

            self._ctx.events.emit("Deposited", user=user, asset=asset, amount=amount)
            return pos

    async def withdraw(
        self, caller: str, user: str, asset: str, amount: int
    ) -> UserPosition:
        """Debit the position, then release ``amount`` to ``user``.

        If the release fails the debit is reverted before the error propagates.
        """
        with self._ctx.guard.hold(POSITIONS_SCOPE):
            self._enter(caller, Role.OPERATOR)
            cfg = self._registry.get(asset)
            _check_amount(amount)

            before = self.get_position(user, asset)
            if amount > before.collateral_amount:
                raise InsufficientCollateral(before.collateral_amount, amount)

            remaining = before.collateral_amount - amount
            price = None
            if before.minted_amount > 0:
                price, _ = await self._oracle.get_price(cfg.price_source)
                cfg = self._registry.get(asset)
                if not ratios.meets_mint_ratio(cfg, remaining, before.minted_amount):
                    raise RatioViolation(remaining, before.minted_amount)

            after = replace(
                before, collateral_amount=remaining, last_update_time=self._ctx.now()
            )
            self._commit(
                after, replace(cfg, deposited_total=cfg.deposited_total - amount)
            )

            try:
                await self._custody.transfer_out(asset, user, amount)
            except Exception as e:
                logger.error(
                    "Release of %d %s to %s failed, reverting: %s", amount, asset, user, e
                )
                cfg = self._registry.get(asset)
                self._commit(
                    before, replace(cfg, deposited_total=cfg.deposited_total + amount)
                )
                raise

            self._ctx.events.emit(
                "Withdrawn", user=user, asset=asset, amount=amount, price=price
            )
            return after

    async def record_mint(
        self, caller: str, user: str, asset: str, amount: int
    ) -> UserPosition:
        """Attribute ``amount`` of newly issued stablecoin to the position.

        Called by the minting collaborator only; the amount is trusted.
        """
        with self._ctx.guard.hold(POSITIONS_SCOPE):
            self._enter(caller, Role.MINTER)
            cfg = self._registry.require_active(asset)
            _check_amount(amount)

            price, _ = await self._oracle.get_price(cfg.price_source)
            cfg = self._registry.require_active(asset)

            pos = self.get_position(user, asset)
            new_debt = pos.minted_amount + amount
            if not ratios.meets_mint_ratio(cfg, pos.collateral_amount, new_debt):
                raise InsufficientCollateral(
                    pos.collateral_amount, ratios.min_collateral(cfg, new_debt)
                )

            pos = replace(pos, minted_amount=new_debt, last_update_time=self._ctx.now())
            self._commit(pos, replace(cfg, minted_total=cfg.minted_total + amount))

            self._ctx.events.emit(
                "MintRecorded", user=user, asset=asset, amount=amount, price=price
            )
            return pos

    async def record_burn(
        self, caller: str, user: str, asset: str, amount: int
    ) -> UserPosition:
        """Reduce the position's debt; burning can only improve the ratio."""
        with self._ctx.guard.hold(POSITIONS_SCOPE):
            self._enter(caller, Role.MINTER)
            cfg = self._registry.get(asset)
            _check_amount(amount)

            pos = self.get_position(user, asset)
            if amount > pos.minted_amount:
                raise ExcessBurn(amount, pos.minted_amount)

            pos = replace(
                pos,
                minted_amount=pos.minted_amount - amount,
                last_update_time=self._ctx.now(),
            )
            self._commit(pos, replace(cfg, minted_total=cfg.minted_total - amount))

            self._ctx.events.emit("BurnRecorded", user=user, asset=asset, amount=amount)
            return pos
