"""
Trade execution and balance reconciliation pipeline.

Components, leaf first:
- TokenMetadataResolver: decimals through an ordered fallback chain
- ActualBalanceProvider / VirtualBalanceProvider: real vs believed holdings
- ExitStrategyCalculator: maps a virtual exit amount onto the real position
- select_slippage_bps: slippage tolerance per swap direction
- SwapOrderOrchestrator: order -> sign -> execute against Jupiter Ultra
- TradeEventHandlers: one flow per inbound event kind

Submodules are imported directly (``from agent_swap.core.exit_strategy import
...``); only errors and models are re-exported here.
"""

from .errors import (
    ErrorCategory,
    ErrorContext,
    SwapPipelineError,
    TransportError,
    ExternalServiceError,
    NoRouteError,
    CalculationError,
    NoBalanceError,
    SigningError,
    KeyLoadError,
)
from .models import (
    NATIVE_SOL_MINT,
    USDC_MINT,
    TokenAmount,
    VirtualBalanceEntry,
    ActualBalanceEntry,
    ExitStrategy,
    ExitPlan,
    SwapOrder,
    ExecutionStatus,
    ExecutionResult,
    SwapOutcome,
)

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "SwapPipelineError",
    "TransportError",
    "ExternalServiceError",
    "NoRouteError",
    "CalculationError",
    "NoBalanceError",
    "SigningError",
    "KeyLoadError",
    # Models
    "NATIVE_SOL_MINT",
    "USDC_MINT",
    "TokenAmount",
    "VirtualBalanceEntry",
    "ActualBalanceEntry",
    "ExitStrategy",
    "ExitPlan",
    "SwapOrder",
    "ExecutionStatus",
    "ExecutionResult",
    "SwapOutcome",
]
