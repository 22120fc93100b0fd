from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from .. import __version__
from ..container import ServiceContainer, get_container
from ..core.errors import TransportError
from ..core.models import NATIVE_SOL_MINT, USDC_MINT

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Service info, available routes and sample webhook payloads"""
    return {
        "name": "Agent Swap Webhook",
        "version": __version__,
        "status": "running",
        "timestamp": _now(),
        "wallet": container.signer.address,
        "mockMode": container.settings.mock_mode,
        "endpoints": {
            "GET /": "Server information and available endpoints",
            "GET /health": "Health check endpoint",
            "GET /balance": "Get wallet token holdings",
            "POST /webhook": "Main webhook endpoint for processing events",
            "POST /test-swap": "Test swap endpoint (inputMint, outputMint, amount)",
        },
        "sampleWebhookPayload": {
            "agentTransactions": {
                "event": "agentTransactions",
                "timestamp": "2024-01-01T12:00:00.000Z",
                "agentId": "agent-uuid",
                "data": {
                    "id": 456,
                    "transaction_type": "swap",
                    "input_mint": NATIVE_SOL_MINT,
                    "input_symbol": "SOL",
                    "input_amount": 0.01,
                    "output_mint": USDC_MINT,
                    "output_symbol": "USDC",
                    "slippage": 0.005,
                },
            },
            "tradeSignals": {
                "event": "tradeSignals",
                "timestamp": "2024-01-01T12:00:00.000Z",
                "agentId": "agent-uuid",
                "data": {
                    "id": 123,
                    "token_address": USDC_MINT,
                    "token_symbol": "USDC",
                    "price_at_signal": 1.0001,
                    "activation_reason": "Test signal",
                    "trade_amount": 0.1,
                },
            },
        },
    }


@router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Health check with provider configuration status"""
    providers = {
        "jupiter": await container.jupiter.health_check(),
        "solana_rpc": await container.rpc.health_check(),
        "agent_platform": await container.platform.health_check(),
    }
    return {
        "status": "healthy",
        "timestamp": _now(),
        "wallet": container.signer.address,
        "providers": providers,
    }


@router.get("/balance")
async def get_balance(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Wallet holdings as reported by Jupiter"""
    wallet = container.signer.address
    try:
        holdings = await container.jupiter.get_holdings_payload(wallet)
    except TransportError as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch holdings: {e}")
    return {"wallet": wallet, "holdings": holdings, "endpoint": "holdings"}
