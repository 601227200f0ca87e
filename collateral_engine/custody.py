"""In-memory custody — reference implementation of the Custody protocol."""
from __future__ import annotations

import logging
from collections import defaultdict

from .errors import CustodyError

logger = logging.getLogger(__name__)


class InMemoryCustody:
    """Holds per-asset balances and the pooled collateral held by the engine.

    Transfers are all-or-nothing: a transfer either moves the exact amount
    or raises ``CustodyError`` without touching any balance.
    """

    def __init__(self, vault: str = "engine") -> None:
        self.vault = vault
        self._balances: dict[tuple[str, str], int] = defaultdict(int)

    def fund(self, asset: str, holder: str, amount: int) -> None:
        if amount < 0:
            raise CustodyError(f"Cannot fund a negative amount: {amount}")
        self._balances[(asset, holder)] += amount

    def balance_of(self, asset: str, holder: str) -> int:
        return self._balances.get((asset, holder), 0)

    def _move(self, asset: str, src: str, dst: str, amount: int) -> None:
        if amount <= 0:
            raise CustodyError(f"Transfer amount must be positive: {amount}")
        available = self.balance_of(asset, src)
        if available < amount:
            raise CustodyError(
                f"Insufficient {asset} balance for {src}: {available} < {amount}"
            )
        self._balances[(asset, src)] -= amount
        self._balances[(asset, dst)] += amount
        logger.debug("Moved %d %s from %s to %s", amount, asset, src, dst)

    async def transfer_in(self, asset: str, from_: str, amount: int) -> None:
        self._move(asset, from_, self.vault, amount)

    async def transfer_out(self, asset: str, to: str, amount: int) -> None:
        self._move(asset, self.vault, to, amount)
