"""Price feed protocol — upstream price source abstraction."""
from typing import Protocol

from ..models import PriceReading


class PriceFeed(Protocol):
    """Abstract interface for reading the latest upstream price of an asset.

    Implementations raise on query failure; they never return a sentinel.
    """

    async def latest_reading(self, asset: str) -> PriceReading: ...
