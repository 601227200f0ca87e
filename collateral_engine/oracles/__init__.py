"""Price oracle modules."""
from .adapter import PriceOracleAdapter, scale_price
from .pyth import PythPriceFeed

__all__ = ["PriceOracleAdapter", "PythPriceFeed", "scale_price"]
