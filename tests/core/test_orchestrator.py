"""Tests for order -> sign -> execute orchestration."""

import base64
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from agent_swap.core.errors import NoRouteError, SigningError, SwapPipelineError, TransportError
from agent_swap.core.models import ExecutionStatus, NATIVE_SOL_MINT, USDC_MINT
from agent_swap.core.orchestrator import SwapOrderOrchestrator
from agent_swap.providers.jupiter import JupiterUltraProvider, build_unsigned_transfer


def order_payload(transaction, request_id="req-123", slippage_bps=300):
    return {
        "inputMint": NATIVE_SOL_MINT,
        "outputMint": USDC_MINT,
        "inAmount": "100000000",
        "outAmount": "15000000",
        "slippageBps": slippage_bps,
        "priceImpactPct": "0.01",
        "transaction": transaction,
        "requestId": request_id,
    }


@pytest.fixture
def jupiter():
    provider = MagicMock()
    provider.get_order = AsyncMock()
    provider.execute = AsyncMock(return_value={"status": "Success", "signature": "5sig", "requestId": "req-123"})
    return provider


class TestSwapOrderOrchestrator:

    @pytest.mark.asyncio
    async def test_happy_path(self, jupiter, signer):
        jupiter.get_order.return_value = order_payload(build_unsigned_transfer(signer.address))
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        outcome = await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 100_000_000, 300)

        jupiter.get_order.assert_awaited_once_with(
            input_mint=NATIVE_SOL_MINT,
            output_mint=USDC_MINT,
            amount=100_000_000,
            taker=signer.address,
            slippage_bps=300,
        )
        signed, request_id = jupiter.execute.await_args.args
        assert request_id == "req-123"
        assert VersionedTransaction.from_bytes(base64.b64decode(signed)).signatures[0] != Signature.default()
        assert outcome.execution.status == ExecutionStatus.SUCCESS

        result = outcome.to_dict()
        assert result["requestId"] == "req-123"
        assert result["executionStatus"] == "Success"
        assert result["signature"] == "5sig"
        assert result["inputAmount"] == "100000000"
        assert result["outputAmount"] == "15000000"
        assert result["priceImpact"] == "0.01"
        assert result["slippageBps"] == 300

    @pytest.mark.asyncio
    async def test_no_transaction_raises_before_signing(self, jupiter):
        jupiter.get_order.return_value = order_payload(None)
        signer = MagicMock()
        signer.address = "wallet"
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        with pytest.raises(NoRouteError) as exc_info:
            await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000)

        assert "No transaction received from Jupiter API" in str(exc_info.value)
        assert exc_info.value.request_id == "req-123"
        signer.sign.assert_not_called()
        jupiter.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_transaction_is_no_route(self, jupiter, signer):
        jupiter.get_order.return_value = order_payload("")
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        with pytest.raises(NoRouteError):
            await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000)

    @pytest.mark.asyncio
    async def test_failed_execution_status(self, jupiter, signer):
        jupiter.get_order.return_value = order_payload(build_unsigned_transfer(signer.address))
        jupiter.execute.return_value = {"status": "Failed", "error": "slippage exceeded", "signature": None}
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        outcome = await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000)

        assert outcome.execution.status == ExecutionStatus.FAILED
        assert outcome.execution.error == "slippage exceeded"
        assert outcome.to_dict()["executionStatus"] == "Failed"

    @pytest.mark.asyncio
    async def test_reported_slippage_missing_uses_requested(self, jupiter, signer):
        jupiter.get_order.return_value = order_payload(build_unsigned_transfer(signer.address), slippage_bps=None)
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        outcome = await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000, 800)

        assert outcome.order.slippage_bps == 800

    @pytest.mark.asyncio
    async def test_signing_failure_stops_before_execute(self, jupiter, signer):
        other = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
        jupiter.get_order.return_value = order_payload(build_unsigned_transfer(other))
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        with pytest.raises(SigningError):
            await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000)

        jupiter.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_error_propagates_without_retry(self, jupiter, signer):
        jupiter.get_order.side_effect = TransportError("jupiter API error: 500", provider="jupiter", status_code=500)
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        with pytest.raises(TransportError):
            await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000)

        assert jupiter.get_order.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5])
    async def test_non_positive_amount(self, jupiter, signer, amount):
        orchestrator = SwapOrderOrchestrator(jupiter, signer)

        with pytest.raises(SwapPipelineError):
            await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, amount)

        jupiter.get_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_null_order_body_is_transport_error(self, settings, signer):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"null")))
        orchestrator = SwapOrderOrchestrator(JupiterUltraProvider(settings, client=client), signer)

        with pytest.raises(TransportError):
            await orchestrator.execute_swap(NATIVE_SOL_MINT, USDC_MINT, 1_000, 300)
