"""Custody protocol — external asset transfer abstraction."""
from typing import Protocol


class Custody(Protocol):
    """Abstract interface for moving collateral in and out of the engine.

    Transfers are exact-amount and raise on any failure.
    """

    async def transfer_in(self, asset: str, from_: str, amount: int) -> None: ...

    async def transfer_out(self, asset: str, to: str, amount: int) -> None: ...
