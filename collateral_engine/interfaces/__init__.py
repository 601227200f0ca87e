"""Protocol interfaces for the collateral engine's collaborators."""
from .authorization import AuthorizationProvider
from .custody import Custody
from .price_feed import PriceFeed

__all__ = ["AuthorizationProvider", "Custody", "PriceFeed"]
