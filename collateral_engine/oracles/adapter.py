"""Price oracle adapter — fresh USD prices with a staleness guard and manual fallback.

Price resolution is a two-step pipeline. ``try_primary`` asks the upstream
feed; only when that query itself fails does ``try_fallback`` consult the
administrator-set manual price. A reading that comes back non-positive or
stale is a hard fault and never falls back.
"""
from __future__ import annotations

import logging
from dataclasses import replace

from ..access import EngineContext
from ..errors import (
    DuplicateFeed,
    FeedNotFound,
    InvalidHeartbeat,
    InvalidPrice,
    NegativeAmount,
    NoFallbackPrice,
    OracleError,
    OracleInactive,
    StalePrice,
    ValidationError,
)
from ..interfaces.price_feed import PriceFeed
from ..models import PRICE_DECIMALS, PriceFeedConfig, PriceResolution, Role

logger = logging.getLogger(__name__)

PRIMARY = "primary"
FALLBACK = "fallback"


def scale_price(value: int, decimals: int) -> int:
    """Rescale a raw feed value from ``decimals`` to 8 decimals."""
    if decimals < PRICE_DECIMALS:
        return value * 10 ** (PRICE_DECIMALS - decimals)
    if decimals > PRICE_DECIMALS:
        return value // 10 ** (decimals - PRICE_DECIMALS)
    return value


class PriceOracleAdapter:
    """Resolve asset prices from an upstream feed, enforcing freshness."""

    def __init__(self, context: EngineContext, feed: PriceFeed) -> None:
        self._ctx = context
        self._feed = feed
        self._configs: dict[str, PriceFeedConfig] = {}

    # ------------------------------------------------------------------
    # Administration (oracle manager only)
    # ------------------------------------------------------------------

    def add_feed(
        self,
        caller: str,
        asset: str,
        heartbeat: int,
        decimals: int = PRICE_DECIMALS,
    ) -> PriceFeedConfig:
        self._ctx.require_role(caller, Role.ORACLE_MANAGER)
        if asset in self._configs:
            raise DuplicateFeed(asset)
        if heartbeat <= 0:
            raise InvalidHeartbeat(heartbeat)
        if decimals < 0:
            raise ValidationError(f"Feed decimals must not be negative: {decimals}")

        cfg = PriceFeedConfig(asset=asset, heartbeat=heartbeat, decimals=decimals)
        self._configs[asset] = cfg
        self._ctx.events.emit(
            "FeedAdded", asset=asset, heartbeat=heartbeat, decimals=decimals
        )
        return cfg

    def set_manual_price(self, caller: str, asset: str, price: int) -> None:
        """Set the fallback price (8 decimals); zero clears it."""
        self._ctx.require_role(caller, Role.ORACLE_MANAGER)
        cfg = self._require_config(asset)
        if price < 0:
            raise NegativeAmount(price)
        self._configs[asset] = replace(cfg, manual_fallback=price)
        self._ctx.events.emit("ManualPriceSet", asset=asset, price=price)

    def update_heartbeat(self, caller: str, asset: str, heartbeat: int) -> None:
        self._ctx.require_role(caller, Role.ORACLE_MANAGER)
        cfg = self._require_config(asset)
        if heartbeat <= 0:
            raise InvalidHeartbeat(heartbeat)
        self._configs[asset] = replace(cfg, heartbeat=heartbeat)
        self._ctx.events.emit("HeartbeatUpdated", asset=asset, heartbeat=heartbeat)

    def set_feed_active(self, caller: str, asset: str, active: bool) -> None:
        self._ctx.require_role(caller, Role.ORACLE_MANAGER)
        cfg = self._require_config(asset)
        self._configs[asset] = replace(cfg, is_active=active)
        self._ctx.events.emit(
            "FeedActivated" if active else "FeedDeactivated", asset=asset
        )

    def get_feed(self, asset: str) -> PriceFeedConfig | None:
        return self._configs.get(asset)

    def feeds(self) -> tuple[PriceFeedConfig, ...]:
        return tuple(self._configs.values())

    def _require_config(self, asset: str) -> PriceFeedConfig:
        cfg = self._configs.get(asset)
        if cfg is None:
            raise FeedNotFound(asset)
        return cfg

    # ------------------------------------------------------------------
    # Resolution pipeline
    # ------------------------------------------------------------------

    async def try_primary(self, asset: str) -> PriceResolution:
        """Read and validate the upstream feed. Never raises."""
        cfg = self._configs.get(asset)
        if cfg is None or not cfg.is_active:
            return PriceResolution(source=PRIMARY, fault=OracleInactive(asset))

        try:
            reading = await self._feed.latest_reading(asset)
        except Exception as e:
            logger.warning("Price feed query for %s failed: %s", asset, e)
            return PriceResolution(source=PRIMARY, fault=e)

        if reading.value <= 0:
            return PriceResolution(
                source=PRIMARY, fault=InvalidPrice(asset, reading.value)
            )

        age = self._ctx.now() - reading.updated_at
        if age > cfg.heartbeat:
            return PriceResolution(
                source=PRIMARY, fault=StalePrice(asset, age, cfg.heartbeat)
            )

        decimals = cfg.decimals
        if reading.decimals is not None:
            if reading.decimals != cfg.decimals:
                logger.warning(
                    "Feed for %s reports %d decimals, configured %d; using reported",
                    asset, reading.decimals, cfg.decimals,
                )
            decimals = reading.decimals

        return PriceResolution(
            source=PRIMARY,
            price=scale_price(reading.value, decimals),
            timestamp=reading.updated_at,
        )

    def try_fallback(self, asset: str) -> PriceResolution:
        """Serve the manual price stamped with the current time. Never raises."""
        cfg = self._configs.get(asset)
        if cfg is None or cfg.manual_fallback == 0:
            return PriceResolution(source=FALLBACK, fault=NoFallbackPrice(asset))
        logger.warning(
            "Using manual fallback price for %s: %d", asset, cfg.manual_fallback
        )
        return PriceResolution(
            source=FALLBACK, price=cfg.manual_fallback, timestamp=self._ctx.now()
        )

    async def resolve(self, asset: str) -> PriceResolution:
        primary = await self.try_primary(asset)
        if primary.ok or isinstance(primary.fault, OracleError):
            return primary
        return self.try_fallback(asset)

    async def get_price(self, asset: str) -> tuple[int, int]:
        """Return ``(price, timestamp)`` with price scaled to 8 decimals.

        Raises:
            OracleInactive: feed missing or deactivated.
            InvalidPrice: upstream reported a non-positive value.
            StalePrice: upstream reading older than the heartbeat.
            NoFallbackPrice: upstream query failed and no manual price is set.
        """
        resolution = await self.resolve(asset)
        if resolution.fault is not None:
            raise resolution.fault
        logger.debug(
            "Price %s = %d @ %d (%s)",
            asset, resolution.price, resolution.timestamp, resolution.source,
        )
        return resolution.price, resolution.timestamp

    async def is_price_fresh(self, asset: str) -> bool:
        """Advisory freshness check of the upstream feed; never raises."""
        try:
            return (await self.try_primary(asset)).ok
        except Exception as e:
            logger.debug("Freshness check for %s failed: %s", asset, e)
            return False
