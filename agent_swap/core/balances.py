"""
Balance providers.

Two independent views of the same holding:
- Actual balance: what the wallet really holds, via Jupiter holdings
- Virtual balance: what the agent platform believes the agent holds

The virtual view may lag the chain. Its fetch failing is a normal outcome
that callers branch on, so it is raised rather than swallowed.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from ..cache import LookupCache
from ..providers.agent_platform import AgentPlatformProvider
from ..providers.jupiter import JupiterUltraProvider
from .models import ActualBalanceEntry, VirtualBalanceEntry, to_raw_units
from .tokens import TokenMetadataResolver

logger = logging.getLogger(__name__)


class ActualBalanceProvider:
    """Reads the wallet's real token holdings."""

    def __init__(
        self,
        jupiter: JupiterUltraProvider,
        resolver: TokenMetadataResolver,
        wallet_address: str,
    ):
        self._jupiter = jupiter
        self._resolver = resolver
        self.wallet_address = wallet_address

    async def get_holdings(self, cache: Optional[LookupCache] = None) -> List[Dict[str, Any]]:
        if cache is None:
            return await self._jupiter.get_holdings(self.wallet_address)
        return await cache.get_or_load(
            ("holdings", self.wallet_address),
            lambda: self._jupiter.get_holdings(self.wallet_address),
        )

    async def get_actual_balance(
        self,
        mint: str,
        cache: Optional[LookupCache] = None,
    ) -> ActualBalanceEntry:
        """Balance of ``mint`` in the wallet. A missing mint is a zero balance, not an error."""
        if cache is None:
            return await self._load_balance(mint, None)
        return await cache.get_or_load(
            ("balance", self.wallet_address, mint),
            lambda: self._load_balance(mint, cache),
        )

    async def _load_balance(self, mint: str, cache: Optional[LookupCache]) -> ActualBalanceEntry:
        holdings = await self.get_holdings(cache)

        match = next((item for item in holdings if item.get("mint") == mint), None)
        if match is None:
            decimals = await self._resolver.resolve_decimals(mint, cache)
            logger.info("Wallet %s holds no %s", self.wallet_address, mint)
            return ActualBalanceEntry(mint=mint, symbol="", raw_units=0, decimals=decimals, found=False)

        decimals = match.get("decimals")
        if decimals is None:
            decimals = await self._resolver.resolve_decimals(mint, cache)

        raw_units = int(match.get("amount") or 0)
        ui_amount = match.get("ui_amount")
        if raw_units == 0 and ui_amount:
            raw_units = to_raw_units(Decimal(ui_amount), decimals)

        return ActualBalanceEntry(
            mint=mint,
            symbol=match.get("symbol") or "",
            raw_units=raw_units,
            decimals=decimals,
            found=True,
        )


class VirtualBalanceProvider:
    """Reads the agent platform's believed holdings for an agent."""

    def __init__(self, platform: AgentPlatformProvider):
        self._platform = platform

    async def get_virtual_balances(self, agent_id: str) -> List[VirtualBalanceEntry]:
        """Raises ExternalServiceError when the platform cannot answer."""
        return await self._platform.get_wallet_balances(agent_id)

    @staticmethod
    def find_balance(
        entries: Sequence[VirtualBalanceEntry],
        mint: str,
        symbol: Optional[str] = None,
    ) -> Decimal:
        """Balance for ``mint``, else a case-insensitive ``symbol`` match, else zero."""
        for entry in entries:
            if entry.token_mint and entry.token_mint == mint:
                return entry.balance

        if symbol:
            wanted = symbol.lower()
            for entry in entries:
                if entry.symbol and entry.symbol.lower() == wanted:
                    return entry.balance

        return Decimal("0")

    async def get_virtual_balance(self, agent_id: str, mint: str, symbol: Optional[str] = None) -> Decimal:
        entries = await self.get_virtual_balances(agent_id)
        return self.find_balance(entries, mint, symbol)


__all__ = ["ActualBalanceProvider", "VirtualBalanceProvider"]
