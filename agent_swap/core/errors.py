"""
Error Classification

Defines the error taxonomy of the swap pipeline. Nothing in the pipeline is
retried: every error below ends the flow for the event that raised it, and the
event handlers turn it into a structured failure result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of pipeline errors."""

    NETWORK = "network"                # Transport / HTTP failure
    EXTERNAL_SERVICE = "external_service"
    NO_ROUTE = "no_route"              # Aggregator found no executable path
    NO_BALANCE = "no_balance"          # Nothing to sell
    CALCULATION = "calculation"        # Reconciliation failure
    SIGNING = "signing"                # Malformed or unsignable transaction
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = False
    provider: Optional[str] = None
    status_code: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class SwapPipelineError(Exception):
    """Base class for all pipeline failures."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        category: Optional[ErrorCategory] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        self.context = context or ErrorContext(category=self.category)


class TransportError(SwapPipelineError):
    """Network or HTTP failure talking to an external service."""

    category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                category=self.category,
                provider=provider,
                status_code=status_code,
            ),
        )
        self.provider = provider
        self.status_code = status_code


class ExternalServiceError(TransportError):
    """An external service could not answer (unconfigured, non-2xx, unreachable)."""

    category = ErrorCategory.EXTERNAL_SERVICE


class NoRouteError(SwapPipelineError):
    """The aggregator returned an order without a transaction payload."""

    category = ErrorCategory.NO_ROUTE

    def __init__(self, input_mint: str, output_mint: str, request_id: Optional[str] = None):
        super().__init__(
            f"No transaction received from Jupiter API for {input_mint} -> {output_mint}",
            context=ErrorContext(
                category=self.category,
                provider="jupiter",
                details={
                    "input_mint": input_mint,
                    "output_mint": output_mint,
                    "request_id": request_id,
                },
            ),
        )
        self.input_mint = input_mint
        self.output_mint = output_mint
        self.request_id = request_id


class CalculationError(SwapPipelineError):
    """Unexpected failure while computing an exit plan."""

    category = ErrorCategory.CALCULATION


class NoBalanceError(CalculationError):
    """The wallet holds none of the token it was asked to sell."""

    category = ErrorCategory.NO_BALANCE

    def __init__(self, mint: str, symbol: Optional[str] = None):
        label = f"{symbol} ({mint})" if symbol else mint
        super().__init__(
            f"No balance found for {label}",
            context=ErrorContext(category=ErrorCategory.NO_BALANCE, details={"mint": mint}),
        )
        self.mint = mint
        self.symbol = symbol


class SigningError(SwapPipelineError):
    """The order transaction could not be decoded or signed."""

    category = ErrorCategory.SIGNING


class KeyLoadError(SwapPipelineError):
    """The wallet secret key is missing or malformed."""

    category = ErrorCategory.CONFIGURATION


__all__ = [
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
]
