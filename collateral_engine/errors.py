"""Exception hierarchy for the collateral engine.

Families follow the failure taxonomy: authorization, validation, economic,
oracle and lifecycle. Collaborator faults (custody, upstream feed) are plain
``RuntimeError`` subclasses so they are never mistaken for engine decisions.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by the engine itself."""


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthorizationError(EngineError):
    pass


class Unauthorized(AuthorizationError):
    def __init__(self, caller: str, role: str) -> None:
        self.caller = caller
        self.role = role
        super().__init__(f"'{caller}' lacks role '{role}'")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(EngineError, ValueError):
    pass


class ZeroAmount(ValidationError):
    def __init__(self) -> None:
        super().__init__("Amount must be greater than zero")


class NegativeAmount(ValidationError):
    def __init__(self, amount: int) -> None:
        self.amount = amount
        super().__init__(f"Amount must not be negative: {amount}")


class DuplicateAsset(ValidationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"Collateral '{asset}' is already registered and active")


class InvalidRatios(ValidationError):
    def __init__(self, collateral_ratio: int, liquidation_threshold: int) -> None:
        self.collateral_ratio = collateral_ratio
        self.liquidation_threshold = liquidation_threshold
        super().__init__(
            f"Collateral ratio {collateral_ratio} must exceed "
            f"liquidation threshold {liquidation_threshold}"
        )


class ThresholdTooLow(ValidationError):
    def __init__(self, liquidation_threshold: int) -> None:
        self.liquidation_threshold = liquidation_threshold
        super().__init__(
            f"Liquidation threshold {liquidation_threshold} is below 10000 bps"
        )


class UnsupportedAsset(ValidationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"Collateral '{asset}' is not active")


class UnknownAsset(ValidationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"Collateral '{asset}' is not registered")


class FeeTooHigh(ValidationError):
    def __init__(self, name: str, bps: int, cap: int) -> None:
        self.bps = bps
        self.cap = cap
        super().__init__(f"{name} {bps} bps exceeds cap of {cap} bps")


class DuplicateFeed(ValidationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"Price feed for '{asset}' already registered")


class FeedNotFound(ValidationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"No price feed registered for '{asset}'")


class InvalidHeartbeat(ValidationError):
    def __init__(self, heartbeat: int) -> None:
        self.heartbeat = heartbeat
        super().__init__(f"Heartbeat must be positive, got {heartbeat}")


# ---------------------------------------------------------------------------
# Economic
# ---------------------------------------------------------------------------


class EconomicError(EngineError):
    pass


class InsufficientCollateral(EconomicError):
    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient collateral: have {available}, need {required}"
        )


class RatioViolation(EconomicError):
    def __init__(self, remaining: int, debt: int) -> None:
        self.remaining = remaining
        self.debt = debt
        super().__init__(
            f"Remaining collateral {remaining} does not cover debt {debt}"
        )


class ExcessBurn(EconomicError):
    def __init__(self, amount: int, minted: int) -> None:
        self.amount = amount
        self.minted = minted
        super().__init__(f"Cannot burn {amount}, only {minted} outstanding")


class PositionHealthy(EconomicError):
    def __init__(self, user: str, asset: str) -> None:
        self.user = user
        self.asset = asset
        super().__init__(f"Position {user}/{asset} is above liquidation threshold")


class NoCollateral(EconomicError):
    def __init__(self, user: str, asset: str) -> None:
        super().__init__(f"Position {user}/{asset} has no collateral")


class NoDebt(EconomicError):
    def __init__(self, user: str, asset: str) -> None:
        super().__init__(f"Position {user}/{asset} has no debt")


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------


class OracleError(EngineError):
    pass


class OracleInactive(OracleError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"Price feed for '{asset}' is not active")


class InvalidPrice(OracleError):
    def __init__(self, asset: str, value: int) -> None:
        self.asset = asset
        self.value = value
        super().__init__(f"Feed for '{asset}' reported non-positive price {value}")


class StalePrice(OracleError):
    def __init__(self, asset: str, age: int, heartbeat: int) -> None:
        self.asset = asset
        self.age = age
        self.heartbeat = heartbeat
        super().__init__(
            f"Price for '{asset}' is {age}s old (heartbeat {heartbeat}s)"
        )


class NoFallbackPrice(OracleError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"Feed for '{asset}' failed and no manual price is set")


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class LifecycleError(EngineError):
    pass


class Paused(LifecycleError):
    def __init__(self) -> None:
        super().__init__("Engine is paused")


class AlreadyPaused(LifecycleError):
    def __init__(self) -> None:
        super().__init__("Engine is already paused")


class NotPaused(LifecycleError):
    def __init__(self) -> None:
        super().__init__("Engine is not paused")


class ReentrantCall(LifecycleError):
    def __init__(self, scope: str) -> None:
        self.scope = scope
        super().__init__(f"Reentrant call into '{scope}'")


class ConcurrentCall(LifecycleError):
    def __init__(self, scope: str) -> None:
        self.scope = scope
        super().__init__(
            f"Another task is already inside '{scope}'; operations must be serialized"
        )


# ---------------------------------------------------------------------------
# Collaborator faults
# ---------------------------------------------------------------------------


class CustodyError(RuntimeError):
    pass


class FeedQueryError(RuntimeError):
    pass
