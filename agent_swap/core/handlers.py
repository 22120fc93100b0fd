"""
Event handlers.

Compose reconciliation and order execution into one flow per event kind.
Pipeline failures never escape a handler: they become ``success: False``
results carrying the error message.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from ..cache import LookupCache
from ..config import Settings
from .errors import CalculationError, SwapPipelineError
from .events import AgentTransactionData, EventKind, TradeSignalData, WebhookEvent
from .exit_strategy import ExitStrategyCalculator
from .models import NATIVE_SOL_DECIMALS, NATIVE_SOL_MINT, ExitPlan, TokenAmount
from .orchestrator import SwapOrderOrchestrator
from .slippage import (
    SwapDirection,
    classify_direction,
    is_high_risk_token,
    select_slippage_bps,
)
from .tokens import TokenMetadataResolver

logger = logging.getLogger(__name__)


class UnknownEventError(ValueError):
    """The webhook carried an event kind this service does not handle."""

    def __init__(self, event: str):
        super().__init__(f"Unknown event type: {event}")
        self.event = event


def _failure(base: Dict[str, Any], exc: Exception) -> Dict[str, Any]:
    result = {**base, "success": False, "error": str(exc)}
    if isinstance(exc, SwapPipelineError):
        result["errorType"] = exc.category.value
    return result


class TradeEventHandlers:
    """Entry points for each inbound event kind."""

    def __init__(
        self,
        settings: Settings,
        orchestrator: SwapOrderOrchestrator,
        calculator: ExitStrategyCalculator,
        resolver: TokenMetadataResolver,
    ):
        self._settings = settings
        self._orchestrator = orchestrator
        self._calculator = calculator
        self._resolver = resolver

    def _is_high_risk(self, mint: str, symbol: Optional[str]) -> bool:
        return is_high_risk_token(
            mint,
            symbol,
            mint_suffixes=self._settings.high_risk_mint_suffixes,
            risky_symbols=self._settings.high_risk_symbols,
        )

    async def dispatch(self, event: WebhookEvent) -> Dict[str, Any]:
        """Validate the payload for ``event.event`` and run its flow.

        Raises:
            UnknownEventError: Unsupported event kind.
            pydantic.ValidationError: Payload does not match the event kind.
        """
        if event.event == EventKind.AGENT_TRANSACTIONS.value:
            data = AgentTransactionData.model_validate(event.data)
            return await self.handle_agent_transaction(event.agent_id, data)
        if event.event == EventKind.TRADE_SIGNALS.value:
            signal = TradeSignalData.model_validate(event.data)
            return await self.handle_trade_signal(event.agent_id, signal)
        raise UnknownEventError(event.event)

    async def handle_agent_transaction(self, agent_id: str, data: AgentTransactionData) -> Dict[str, Any]:
        logger.info(
            "Processing agent transaction %s: %s %s %s -> %s",
            data.id,
            data.transaction_type,
            data.input_amount,
            data.input_symbol or data.input_mint,
            data.output_symbol or data.output_mint,
        )

        cache = LookupCache()
        direction = classify_direction(data.input_mint, data.output_mint)
        is_exit = direction == SwapDirection.SELL_FOR_NATIVE
        base: Dict[str, Any] = {"transactionId": data.id}
        if is_exit:
            base["isExit"] = True

        plan: Optional[ExitPlan] = None
        try:
            if is_exit:
                plan = await self._calculator.compute_exit_plan(
                    data.input_amount,
                    data.input_mint,
                    data.input_symbol,
                    agent_id,
                    cache,
                )
                amount = plan.amount_to_sell
                if amount.raw_units <= 0:
                    raise CalculationError(
                        f"Exit amount {plan.amount_to_sell_ui} rounds to zero base units"
                    )
                slippage_bps = select_slippage_bps(
                    direction,
                    is_exit=True,
                    is_high_risk=self._is_high_risk(data.input_mint, data.input_symbol),
                    hint=data.slippage,
                )
            else:
                decimals = await self._resolver.resolve_decimals(data.input_mint, cache)
                amount = TokenAmount.from_ui(data.input_mint, data.input_amount, decimals)
                slippage_bps = select_slippage_bps(
                    direction,
                    is_exit=False,
                    is_high_risk=False,
                    hint=data.slippage,
                )

            outcome = await self._orchestrator.execute_swap(
                data.input_mint,
                data.output_mint,
                amount.raw_units,
                slippage_bps,
            )
        except SwapPipelineError as exc:
            logger.error("Agent transaction %s failed: %s", data.id, exc)
            result = _failure(base, exc)
            if plan is not None:
                result["exitStrategyInfo"] = plan.to_dict()
            return result
        except Exception as exc:  # noqa: BLE001 - reported in the event result
            logger.exception("Unexpected error processing agent transaction %s", data.id)
            return _failure(base, exc)

        result = {**base, "success": True, **outcome.to_dict()}
        if plan is not None:
            result["exitStrategyInfo"] = plan.to_dict()
        return result

    async def handle_trade_signal(self, agent_id: str, data: TradeSignalData) -> Dict[str, Any]:
        logger.info(
            "Processing trade signal %s for %s (%s): %s",
            data.id,
            data.token_symbol,
            data.token_address,
            data.activation_reason,
        )

        base: Dict[str, Any] = {
            "signalId": data.id,
            "tokenSymbol": data.token_symbol,
            "tokenAddress": data.token_address,
        }

        amount_sol = data.trade_amount or Decimal(str(self._settings.signal_trade_amount_sol))
        amount = TokenAmount.from_ui(NATIVE_SOL_MINT, amount_sol, NATIVE_SOL_DECIMALS)
        slippage_bps = select_slippage_bps(
            SwapDirection.ENTRY,
            is_exit=False,
            is_high_risk=False,
            hint=data.slippage,
        )

        try:
            outcome = await self._orchestrator.execute_swap(
                NATIVE_SOL_MINT,
                data.token_address,
                amount.raw_units,
                slippage_bps,
            )
        except SwapPipelineError as exc:
            logger.error("Trade signal %s failed: %s", data.id, exc)
            return _failure(base, exc)
        except Exception as exc:  # noqa: BLE001 - reported in the event result
            logger.exception("Unexpected error processing trade signal %s", data.id)
            return _failure(base, exc)

        return {**base, "success": True, **outcome.to_dict()}


__all__ = ["TradeEventHandlers", "UnknownEventError"]
