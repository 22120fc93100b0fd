"""Solana JSON-RPC provider used for mint account lookups."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from .base import HttpProvider
from ..config import Settings
from ..core.errors import TransportError


class SolanaRpcProvider(HttpProvider):
    """Read-only access to a Solana RPC node."""

    name = "solana-rpc"
    timeout_s = 20

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__(client=client, timeout_s=settings.request_timeout_seconds)
        self.rpc_url = settings.solana_rpc_url

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "RPC URL not configured"}
        return {"status": "configured"}

    async def _rpc_call(self, method: str, params: List[Any]) -> Dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }
        data = await self._send(
            "POST",
            self.rpc_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        if not isinstance(data, dict):
            raise TransportError("Unexpected response from Solana RPC", provider=self.name)
        if "error" in data:
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise TransportError(f"RPC error: {message}", provider=self.name)
        return data

    async def get_account_info(self, address: str) -> Optional[Dict[str, Any]]:
        """Return the jsonParsed account, or None if the account does not exist."""
        result = await self._rpc_call(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed"}],
        )
        return (result.get("result") or {}).get("value")

    async def get_mint_decimals(self, mint: str) -> Optional[int]:
        account = await self.get_account_info(mint)
        if not account:
            return None
        data = account.get("data")
        if not isinstance(data, dict):
            return None
        info = (data.get("parsed") or {}).get("info") or {}
        decimals = info.get("decimals")
        return int(decimals) if decimals is not None else None


__all__ = ["SolanaRpcProvider"]
