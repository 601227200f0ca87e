"""Pyth Network upstream price feed (Hermes REST API)."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import FeedQueryError
from ..models import PriceReading

logger = logging.getLogger(__name__)


class PythPriceFeed:
    """Read the latest price of an asset from Pyth Network."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout
        # Hermes reports ids lowercase without the 0x prefix
        self.price_feeds = {
            asset: fid.lower().removeprefix("0x")
            for asset, fid in config.feed_ids.items()
        }

    async def latest_reading(self, asset: str) -> PriceReading:
        """Fetch the current Pyth price for ``asset``.

        The raw integer price is returned untouched together with the
        decimals implied by Pyth's ``expo``; the adapter rescales it.

        Raises:
            FeedQueryError: unknown asset, HTTP error, network failure or a
                response that does not contain the requested feed.
        """
        feed_id = self.price_feeds.get(asset)
        if not feed_id:
            raise FeedQueryError(f"No Pyth feed id configured for '{asset}'")

        url = f"{self.hermes_url}?ids[]={feed_id}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        raise FeedQueryError(
                            f"Pyth returned HTTP {response.status} for '{asset}'"
                        )
                    data = await response.json()
        except FeedQueryError:
            raise
        except Exception as e:
            raise FeedQueryError(f"Error fetching Pyth price for '{asset}': {e}") from e

        for item in data.get("parsed", []):
            if item.get("id") != feed_id:
                continue
            price_data = item.get("price", {})
            expo = price_data.get("expo")
            reading = PriceReading(
                value=int(price_data.get("price", 0)),
                updated_at=int(price_data.get("publish_time", 0)),
                decimals=-int(expo) if expo is not None else None,
            )
            logger.debug(
                "Pyth %s: raw=%d expo=%s publish_time=%d",
                asset, reading.value, expo, reading.updated_at,
            )
            return reading

        raise FeedQueryError(f"Pyth response did not include feed for '{asset}'")
