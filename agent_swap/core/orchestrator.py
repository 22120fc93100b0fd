"""
Swap order orchestration: order -> sign -> execute.

Nothing here is retried. A failure at any step ends the swap and is raised
to the caller as the event's outcome.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..providers.jupiter import JupiterUltraProvider
from .errors import NoRouteError, SigningError, SwapPipelineError
from .models import ExecutionResult, ExecutionStatus, SwapOrder, SwapOutcome
from .signing import WalletSigner

logger = logging.getLogger(__name__)


class SwapOrderOrchestrator:
    """Requests, signs and executes Jupiter Ultra orders for the wallet."""

    def __init__(self, jupiter: JupiterUltraProvider, signer: WalletSigner):
        self._jupiter = jupiter
        self._signer = signer

    @property
    def wallet_address(self) -> str:
        return self._signer.address

    async def request_order(
        self,
        input_mint: str,
        output_mint: str,
        raw_amount: int,
        slippage_bps: Optional[int] = None,
    ) -> SwapOrder:
        data = await self._jupiter.get_order(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=raw_amount,
            taker=self.wallet_address,
            slippage_bps=slippage_bps,
        )
        order = SwapOrder.from_api(data, slippage_bps if slippage_bps is not None else 0)
        if not order.transaction:
            raise NoRouteError(input_mint, output_mint, order.request_id or None)
        return order

    def sign_order(self, order: SwapOrder) -> str:
        if not order.transaction:
            raise SigningError("Order has no transaction to sign")
        return self._signer.sign(order.transaction)

    async def submit(self, signed_transaction: str, request_id: str) -> ExecutionResult:
        data = await self._jupiter.execute(signed_transaction, request_id)
        raw_status = data.get("status") if isinstance(data, dict) else None
        return ExecutionResult(
            status=ExecutionStatus.parse(raw_status),
            signature=data.get("signature") if isinstance(data, dict) else None,
            request_id=request_id,
            raw_status=raw_status,
            error=data.get("error") if isinstance(data, dict) else None,
        )

    async def execute_swap(
        self,
        input_mint: str,
        output_mint: str,
        raw_amount: int,
        slippage_bps: Optional[int] = None,
    ) -> SwapOutcome:
        """
        Run one swap end to end.

        Raises:
            NoRouteError: Jupiter returned no transaction; signing is not attempted.
            SigningError: The transaction could not be decoded or signed.
            TransportError: Any Jupiter call failed.
        """
        if raw_amount <= 0:
            raise SwapPipelineError(f"Swap amount must be positive, got {raw_amount}")

        order = await self.request_order(input_mint, output_mint, raw_amount, slippage_bps)
        signed = self.sign_order(order)
        execution = await self.submit(signed, order.request_id)

        logger.info(
            "Swap %s -> %s executed: status=%s signature=%s requestId=%s",
            input_mint,
            output_mint,
            execution.raw_status,
            execution.signature,
            order.request_id,
        )
        return SwapOutcome(order=order, execution=execution)


__all__ = ["SwapOrderOrchestrator"]
