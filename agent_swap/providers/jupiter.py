"""
Jupiter Ultra API provider for Solana swaps.

Covers the surfaces the swap pipeline relies on:
- Order: unsigned swap transaction plus pricing for a taker
- Execute: submit a signed order transaction
- Holdings: token balances for a wallet address
- Token metadata: per-token lookup and the bulk token list

The base URL depends on whether an API key is configured
(https://api.jup.ag with a key, https://lite-api.jup.ag without).
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

import httpx
from solders.hash import Hash
from solders.message import MessageV0
from solders.null_signer import NullSigner
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from .base import HttpProvider
from ..config import Settings
from ..core.models import NATIVE_SOL_DECIMALS, NATIVE_SOL_MINT, USDC_MINT

logger = logging.getLogger(__name__)


ORDER_PATH = "/ultra/v1/order"
EXECUTE_PATH = "/ultra/v1/execute"
HOLDINGS_PATH = "/ultra/v1/holdings"
TOKEN_PATH = "/tokens/v1/token"


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def _int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return None


def normalize_holdings(payload: Any) -> List[Dict[str, Any]]:
    """Flatten a holdings response into one entry per mint.

    Accepts the Ultra shape (native ``amount`` plus ``tokens`` keyed by mint,
    each a list of token accounts) and a flat ``balances`` list.

    Each entry carries ``mint``, ``symbol``, ``amount`` (raw units, int),
    ``decimals`` (None when the payload omits it) and ``ui_amount``.
    """
    if not isinstance(payload, dict):
        return []

    entries: List[Dict[str, Any]] = []

    native_raw = _int(payload.get("amount"))
    if native_raw is not None:
        entries.append({
            "mint": NATIVE_SOL_MINT,
            "symbol": "SOL",
            "amount": native_raw,
            "decimals": NATIVE_SOL_DECIMALS,
            "ui_amount": _decimal(payload.get("uiAmount")),
        })

    tokens = payload.get("tokens")
    if isinstance(tokens, dict):
        for mint, accounts in tokens.items():
            if isinstance(accounts, dict):
                accounts = [accounts]
            if not isinstance(accounts, list):
                continue
            total = 0
            decimals: Optional[int] = None
            for account in accounts:
                if not isinstance(account, dict):
                    continue
                total += _int(account.get("amount")) or 0
                if decimals is None:
                    decimals = _int(account.get("decimals"))
            entries.append({
                "mint": mint,
                "symbol": "",
                "amount": total,
                "decimals": decimals,
                "ui_amount": None,
            })

    balances = payload.get("balances")
    if isinstance(balances, list):
        for item in balances:
            if not isinstance(item, dict):
                continue
            mint = item.get("mint") or item.get("address")
            if not mint:
                continue
            entries.append({
                "mint": mint,
                "symbol": item.get("symbol") or "",
                "amount": _int(item.get("amount")) or 0,
                "decimals": _int(item.get("decimals")),
                "ui_amount": _decimal(item.get("uiAmount")),
            })

    return entries


class JupiterUltraProvider(HttpProvider):
    """
    Jupiter Ultra swap provider.

    Usage:
        provider = JupiterUltraProvider(settings)

        order = await provider.get_order(
            input_mint=NATIVE_SOL_MINT,
            output_mint=USDC_MINT,
            amount=100_000_000,
            taker="...",
            slippage_bps=300,
        )
        result = await provider.execute(signed_tx_base64, order["requestId"])
    """

    name = "jupiter"
    timeout_s = 30

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__(client=client, timeout_s=settings.request_timeout_seconds)
        self.base_url = settings.jupiter_url
        self.api_key = settings.jupiter_api_key
        self.token_list_path = settings.token_list_path

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self._send(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=json,
            headers=self._headers(),
        )

    def _expect_object(self, data: Any, path: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise self.error_class(
                f"{self.name} returned an unexpected {type(data).__name__} body for {path}",
                provider=self.name,
            )
        return data

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "configured",
            "base_url": self.base_url,
            "api_key": bool(self.api_key),
        }

    async def get_order(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        taker: str,
        slippage_bps: Optional[int] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "taker": taker,
        }
        if slippage_bps is not None:
            params["slippageBps"] = str(slippage_bps)

        data = self._expect_object(await self._request("GET", ORDER_PATH, params=params), ORDER_PATH)
        logger.info(
            "Swap order received: %s -> %s in=%s out=%s slippageBps=%s priceImpactPct=%s",
            data.get("inputMint"),
            data.get("outputMint"),
            data.get("inAmount"),
            data.get("outAmount"),
            data.get("slippageBps"),
            data.get("priceImpactPct"),
        )
        return data

    async def execute(self, signed_transaction: str, request_id: str) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            EXECUTE_PATH,
            json={"signedTransaction": signed_transaction, "requestId": request_id},
        )
        data = self._expect_object(data, EXECUTE_PATH)
        logger.info("Swap execution result: status=%s signature=%s", data.get("status"), data.get("signature"))
        return data

    async def get_holdings_payload(self, address: str) -> Dict[str, Any]:
        return await self._request("GET", f"{HOLDINGS_PATH}/{address}")

    async def get_holdings(self, address: str) -> List[Dict[str, Any]]:
        return normalize_holdings(await self.get_holdings_payload(address))

    async def get_token(self, mint: str) -> Optional[Dict[str, Any]]:
        data = await self._request("GET", f"{TOKEN_PATH}/{mint}")
        return data if isinstance(data, dict) else None

    async def get_token_list(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", self.token_list_path)
        if isinstance(data, dict):
            data = data.get("tokens") or data.get("data") or []
        return [item for item in data if isinstance(item, dict)]


def build_unsigned_transfer(taker: str) -> str:
    """A real unsigned v0 transaction (zero-lamport self transfer) for ``taker``."""
    owner = Pubkey.from_string(taker)
    instruction = transfer(TransferParams(from_pubkey=owner, to_pubkey=owner, lamports=0))
    message = MessageV0.try_compile(owner, [instruction], [], Hash.default())
    tx = VersionedTransaction(message, [NullSigner(owner)])
    return base64.b64encode(bytes(tx)).decode("ascii")


class MockJupiterUltraProvider(JupiterUltraProvider):
    """Deterministic Jupiter responses for safe testing. No request leaves the process."""

    name = "jupiter-mock"

    MOCK_DECIMALS = {NATIVE_SOL_MINT: NATIVE_SOL_DECIMALS, USDC_MINT: 6}

    def __init__(self, settings: Settings, *, latency_s: Optional[float] = None) -> None:
        super().__init__(settings)
        self.latency_s = settings.mock_latency_seconds if latency_s is None else latency_s

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "mock"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        logger.info("Mock API call: %s %s", method, path)
        if self.latency_s:
            await asyncio.sleep(self.latency_s)

        parsed = urlsplit(path)
        query = {key: values[0] for key, values in parse_qs(parsed.query).items()}
        query.update(params or {})
        route = parsed.path

        if route.startswith(HOLDINGS_PATH):
            return {
                "wallet": route.rsplit("/", 1)[-1],
                "balances": [
                    {
                        "mint": NATIVE_SOL_MINT,
                        "symbol": "SOL",
                        "amount": "5000000000",
                        "decimals": 9,
                        "uiAmount": 5.0,
                    },
                    {
                        "mint": USDC_MINT,
                        "symbol": "USDC",
                        "amount": "1000000000",
                        "decimals": 6,
                        "uiAmount": 1000.0,
                    },
                ],
                "mockData": True,
            }

        if route == ORDER_PATH:
            amount = int(query.get("amount", 0))
            return {
                "mode": "ultra",
                "inputMint": query.get("inputMint"),
                "outputMint": query.get("outputMint"),
                "inAmount": str(amount),
                "outAmount": str(int(amount * 0.98)),
                "slippageBps": int(query["slippageBps"]) if query.get("slippageBps") else None,
                "priceImpactPct": "0",
                "transaction": build_unsigned_transfer(query["taker"]),
                "requestId": f"mock-{int(time.time() * 1000)}",
            }

        if route == EXECUTE_PATH:
            return {
                "status": "success",
                "signature": f"mock{int(time.time() * 1000)}",
                "requestId": (json or {}).get("requestId"),
            }

        if route.startswith(TOKEN_PATH):
            mint = route.rsplit("/", 1)[-1]
            return {"address": mint, "decimals": self.MOCK_DECIMALS.get(mint, 6)}

        if route == self.token_list_path:
            return [{"address": mint, "decimals": dec} for mint, dec in self.MOCK_DECIMALS.items()]

        raise ValueError(f"Mock API: unhandled endpoint {route}")


def build_jupiter_provider(settings: Settings) -> JupiterUltraProvider:
    if settings.mock_mode:
        return MockJupiterUltraProvider(settings)
    return JupiterUltraProvider(settings)


__all__ = [
    "JupiterUltraProvider",
    "MockJupiterUltraProvider",
    "build_jupiter_provider",
    "build_unsigned_transfer",
    "normalize_holdings",
]
