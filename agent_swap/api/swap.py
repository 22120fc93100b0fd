import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..container import ServiceContainer, get_container
from ..core.errors import NoRouteError, SwapPipelineError

logger = logging.getLogger(__name__)
router = APIRouter()


class SwapTestRequest(BaseModel):
    inputMint: str = Field(min_length=1, description="Input token mint")
    outputMint: str = Field(min_length=1, description="Output token mint")
    amount: int = Field(gt=0, description="Amount in input token base units")
    slippageBps: Optional[int] = Field(default=None, ge=0, le=10_000, description="Slippage in basis points")


@router.post("/test-swap")
async def run_test_swap(
    req: SwapTestRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    """Run order -> sign -> execute directly, bypassing event handling."""
    try:
        outcome = await container.orchestrator.execute_swap(
            req.inputMint,
            req.outputMint,
            req.amount,
            req.slippageBps,
        )
    except NoRouteError as e:
        raise HTTPException(status_code=422, detail=f"Test swap failed: {e}")
    except SwapPipelineError as e:
        logger.error("Test swap error: %s", e)
        raise HTTPException(status_code=500, detail=f"Test swap failed: {e}")

    order = outcome.order
    return {
        "success": True,
        "orderResponse": {
            "inputMint": order.input_mint,
            "outputMint": order.output_mint,
            "inAmount": str(order.in_amount_raw),
            "outAmount": str(order.out_amount_raw),
            "slippageBps": order.slippage_bps,
            "priceImpactPct": order.price_impact_pct,
            "requestId": order.request_id,
        },
        "executeResponse": {
            "status": outcome.execution.raw_status,
            "signature": outcome.execution.signature,
            "requestId": outcome.execution.request_id,
        },
    }
