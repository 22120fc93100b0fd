"""Agent platform client: the agent's believed (virtual) wallet holdings."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from .base import HttpProvider
from ..config import Settings
from ..core.errors import ExternalServiceError
from ..core.models import VirtualBalanceEntry

logger = logging.getLogger(__name__)


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal("0")
    except (InvalidOperation, ValueError):
        return Decimal("0")


def parse_virtual_balances(payload: Any) -> List[VirtualBalanceEntry]:
    """Parse a bare list or a ``{balances|tokens|data: [...]}`` envelope."""
    items: Any = payload
    if isinstance(payload, dict):
        items = payload.get("balances") or payload.get("tokens") or payload.get("data") or []
        if isinstance(items, dict):
            items = items.get("balances") or items.get("tokens") or []
    if not isinstance(items, list):
        raise ExternalServiceError("Unexpected virtual balance payload", provider="agent-platform")

    entries: List[VirtualBalanceEntry] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        entries.append(
            VirtualBalanceEntry(
                token_mint=item.get("tokenMint") or item.get("token_mint") or item.get("mint") or "",
                symbol=item.get("symbol") or item.get("tokenSymbol") or "",
                balance=_decimal(item.get("balance", item.get("amount"))),
                value_usd=_decimal(item.get("valueUsd", item.get("value_usd"))),
            )
        )
    return entries


class AgentPlatformProvider(HttpProvider):
    """Fetches an agent's wallet balances from the agent platform."""

    name = "agent-platform"
    timeout_s = 15
    error_class = ExternalServiceError

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__(client=client, timeout_s=settings.request_timeout_seconds)
        self.base_url = settings.agent_platform_url
        self.api_key = settings.agent_platform_api_key

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Agent platform URL not configured"}
        return {"status": "configured"}

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_wallet_balances(self, agent_id: str) -> List[VirtualBalanceEntry]:
        if not self.base_url:
            raise ExternalServiceError("Agent platform URL not configured", provider=self.name)

        payload = await self._send(
            "GET",
            f"{self.base_url}/agents/{agent_id}/wallet/balances",
            headers=self._headers(),
        )
        balances = parse_virtual_balances(payload)
        logger.debug("Fetched %d virtual balances for agent %s", len(balances), agent_id)
        return balances


__all__ = ["AgentPlatformProvider", "parse_virtual_balances"]
