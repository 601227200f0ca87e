"""Engine orchestration — wires registry, ledger, oracle and settlement together."""
from __future__ import annotations

import logging
from typing import Callable

from ..access import EngineContext, RoleRegistry, system_clock
from ..config import AppConfig
from ..events import EventLog
from ..interfaces.custody import Custody
from ..interfaces.price_feed import PriceFeed
from ..models import LiquidationRecord, Role, UserPosition
from ..oracles import PriceOracleAdapter, PythPriceFeed
from .ledger import PositionLedger
from .liquidation import LiquidationSettlement
from .registry import CollateralRegistry

logger = logging.getLogger(__name__)


class CollateralEngine:
    """One isolated instance of the collateral/liquidation engine.

    Components are exposed as attributes for administrative calls
    (``engine.registry``, ``engine.oracle``); the position operations are
    forwarded here for convenience.
    """

    def __init__(
        self,
        custody: Custody,
        feed: PriceFeed,
        treasury: str,
        roles: RoleRegistry | None = None,
        liquidation_penalty_bps: int = 1000,
        stability_fee_bps: int = 0,
        clock: Callable[[], int] = system_clock,
    ) -> None:
        self.roles = roles if roles is not None else RoleRegistry()
        self.context = EngineContext(auth=self.roles, clock=clock)
        self.oracle = PriceOracleAdapter(self.context, feed)
        self.registry = CollateralRegistry(
            self.context,
            liquidation_penalty_bps=liquidation_penalty_bps,
            stability_fee_bps=stability_fee_bps,
        )
        self.ledger = PositionLedger(self.context, self.registry, self.oracle, custody)
        self.liquidations = LiquidationSettlement(
            self.context, self.registry, self.ledger, self.oracle, custody, treasury
        )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        custody: Custody,
        feed: PriceFeed | None = None,
        clock: Callable[[], int] = system_clock,
    ) -> CollateralEngine:
        """Build an engine and seed roles, feeds and collaterals from config.

        Seeding goes through the regular role-gated operations, acting as the
        first configured oracle manager and manager.
        """
        if feed is None:
            feed = PythPriceFeed(config.price_oracle.pyth)

        engine = cls(
            custody,
            feed,
            treasury=config.engine.treasury,
            roles=RoleRegistry(config.roles.grants()),
            liquidation_penalty_bps=config.engine.liquidation_penalty_bps,
            stability_fee_bps=config.engine.stability_fee_bps,
            clock=clock,
        )

        if config.price_oracle.feeds:
            oracle_manager = config.roles.oracle_manager[0]
            for asset, feed_cfg in config.price_oracle.feeds.items():
                engine.oracle.add_feed(
                    oracle_manager, asset, feed_cfg.heartbeat, feed_cfg.decimals
                )
                if feed_cfg.manual_price:
                    engine.oracle.set_manual_price(
                        oracle_manager, asset, feed_cfg.manual_price
                    )
                if not feed_cfg.active:
                    engine.oracle.set_feed_active(oracle_manager, asset, False)

        if config.collaterals:
            manager = config.roles.manager[0]
            for asset, col in config.collaterals.items():
                engine.registry.register_collateral(
                    manager,
                    asset,
                    col.collateral_ratio,
                    col.liquidation_threshold,
                    col.price_source,
                )
                if not col.active:
                    engine.registry.set_collateral_active(manager, asset, False)

        logger.info(
            "Engine bootstrapped: %d feeds, %d collaterals",
            len(engine.oracle.feeds()),
            len(engine.registry.assets()),
        )
        return engine

    # ------------------------------------------------------------------
    # Lifecycle and roles
    # ------------------------------------------------------------------

    @property
    def events(self) -> EventLog:
        return self.context.events

    @property
    def paused(self) -> bool:
        return self.context.paused

    def pause(self, caller: str) -> None:
        self.context.pause(caller)

    def unpause(self, caller: str) -> None:
        self.context.unpause(caller)

    def grant_role(self, caller: str, identity: str, role: Role) -> None:
        self.roles.grant_role(caller, identity, role)
        self.events.emit("RoleGranted", account=identity, role=Role(role).value, sender=caller)

    def revoke_role(self, caller: str, identity: str, role: Role) -> None:
        self.roles.revoke_role(caller, identity, role)
        self.events.emit("RoleRevoked", account=identity, role=Role(role).value, sender=caller)

    # ------------------------------------------------------------------
    # Position operations
    # ------------------------------------------------------------------

    async def deposit(self, caller: str, user: str, asset: str, amount: int) -> UserPosition:
        return await self.ledger.deposit(caller, user, asset, amount)

    async def withdraw(self, caller: str, user: str, asset: str, amount: int) -> UserPosition:
        return await self.ledger.withdraw(caller, user, asset, amount)

    async def record_mint(self, caller: str, user: str, asset: str, amount: int) -> UserPosition:
        return await self.ledger.record_mint(caller, user, asset, amount)

    async def record_burn(self, caller: str, user: str, asset: str, amount: int) -> UserPosition:
        return await self.ledger.record_burn(caller, user, asset, amount)

    async def liquidate(self, caller: str, user: str, asset: str) -> LiquidationRecord:
        return await self.liquidations.liquidate(caller, user, asset)

    def get_position(self, user: str, asset: str) -> UserPosition:
        return self.ledger.get_position(user, asset)

    def health_factor(self, user: str, asset: str) -> int | float:
        return self.ledger.health_factor(user, asset)

    def total_collateral_value(self) -> int:
        return self.registry.total_collateral_value()
