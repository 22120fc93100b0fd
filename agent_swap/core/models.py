"""
Swap pipeline models and types.

All entities are created per inbound event, flow through the pipeline once and
are discarded.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR
from enum import Enum
from typing import Any, Dict, Optional


NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
NATIVE_SOL_DECIMALS = 9

# Fraction of a position above which an exit counts as selling everything
SELL_ALL_THRESHOLD = Decimal("0.99")


def to_raw_units(ui_amount: Decimal, decimals: int) -> int:
    """Scale a UI amount to integer base units, truncating toward zero."""
    if ui_amount <= 0:
        return 0
    scale = Decimal(10) ** decimals
    return int((ui_amount * scale).to_integral_value(rounding=ROUND_FLOOR))


def to_ui_amount(raw_units: int, decimals: int) -> Decimal:
    return Decimal(raw_units) / (Decimal(10) ** decimals)


@dataclass(frozen=True)
class TokenAmount:
    """An amount of a token in both raw and UI units."""
    mint: str
    raw_units: int
    decimals: int

    @property
    def ui_amount(self) -> Decimal:
        return to_ui_amount(self.raw_units, self.decimals)

    @classmethod
    def from_ui(cls, mint: str, ui_amount: Decimal, decimals: int) -> "TokenAmount":
        return cls(mint=mint, raw_units=to_raw_units(ui_amount, decimals), decimals=decimals)


@dataclass
class VirtualBalanceEntry:
    """A holding as the agent platform believes it to be."""
    token_mint: str
    symbol: str
    balance: Decimal
    value_usd: Decimal = Decimal("0")


@dataclass
class ActualBalanceEntry:
    """A holding as reported for the wallet on-chain."""
    mint: str
    symbol: str
    raw_units: int
    decimals: int
    found: bool = True

    @property
    def ui_amount(self) -> Decimal:
        return to_ui_amount(self.raw_units, self.decimals)

    @property
    def amount(self) -> TokenAmount:
        return TokenAmount(self.mint, self.raw_units, self.decimals)

    @property
    def is_empty(self) -> bool:
        return not self.found or self.raw_units <= 0


class ExitStrategy(str, Enum):
    """How an exit amount was reconciled against the real position."""
    FALLBACK_EXIT_ALL = "FALLBACK_EXIT_ALL"
    FALLBACK_EXIT_WEBHOOK = "FALLBACK_EXIT_WEBHOOK"
    FULL_EXIT_ZERO_VIRTUAL = "FULL_EXIT_ZERO_VIRTUAL"
    FULL_EXIT_COMPLETE = "FULL_EXIT_COMPLETE"
    PARTIAL_EXIT = "PARTIAL_EXIT"


@dataclass
class ExitPlan:
    """How much of the actual balance to sell for a requested exit."""
    strategy: ExitStrategy
    mint: str
    decimals: int
    percentage_to_sell: Decimal
    amount_to_sell_ui: Decimal
    amount_to_sell_raw: int
    virtual_balance: Optional[Decimal]
    actual_balance: Decimal
    requested_amount: Decimal
    fallback_mode: bool = False

    @property
    def amount_to_sell(self) -> TokenAmount:
        return TokenAmount(self.mint, self.amount_to_sell_raw, self.decimals)

    @property
    def will_sell_all(self) -> bool:
        return self.percentage_to_sell >= SELL_ALL_THRESHOLD

    @property
    def virtual_balance_fetch_success(self) -> bool:
        return not self.fallback_mode

    def to_dict(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "strategy": self.strategy.value,
            "percentageToSell": float(self.percentage_to_sell),
            "percentageToSellDisplay": f"{self.percentage_to_sell * 100:.2f}%",
            "amountToSell": float(self.amount_to_sell_ui),
            "amountToSellRaw": str(self.amount_to_sell_raw),
            "virtualBalance": float(self.virtual_balance) if self.virtual_balance is not None else None,
            "actualBalance": float(self.actual_balance),
            "requestedAmount": float(self.requested_amount),
            "willSellAll": self.will_sell_all,
            "fallbackMode": self.fallback_mode,
            "virtualBalanceFetchSuccess": self.virtual_balance_fetch_success,
        }
        if self.fallback_mode:
            info["fallbackReason"] = "Virtual balance unavailable; compared webhook amount to actual balance"
        return info


@dataclass
class SwapOrder:
    """An executable order returned by the aggregator."""
    input_mint: str
    output_mint: str
    in_amount_raw: int
    out_amount_raw: int
    slippage_bps: int
    transaction: Optional[str]          # Base64 unsigned transaction
    request_id: str
    price_impact_pct: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any], slippage_bps: int) -> "SwapOrder":
        def _int(value: Any) -> int:
            try:
                return int(value)
            except (TypeError, ValueError):
                return 0

        impact = data.get("priceImpactPct")
        reported_bps = data.get("slippageBps")
        return cls(
            input_mint=data.get("inputMint", ""),
            output_mint=data.get("outputMint", ""),
            in_amount_raw=_int(data.get("inAmount")),
            out_amount_raw=_int(data.get("outAmount")),
            slippage_bps=_int(reported_bps) if reported_bps is not None else slippage_bps,
            transaction=data.get("transaction") or None,
            request_id=str(data.get("requestId") or ""),
            price_impact_pct=str(impact) if impact is not None else None,
            raw=data,
        )


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: Any) -> "ExecutionStatus":
        if isinstance(value, str) and value.lower() == "success":
            return cls.SUCCESS
        return cls.FAILED


@dataclass
class ExecutionResult:
    """Outcome of submitting a signed order for execution."""
    status: ExecutionStatus
    signature: Optional[str]
    request_id: str
    raw_status: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SwapOutcome:
    """An executed swap: the order that was signed plus its execution."""
    order: SwapOrder
    execution: ExecutionResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requestId": self.order.request_id,
            "executionStatus": self.execution.raw_status or self.execution.status.value,
            "signature": self.execution.signature,
            "inputAmount": str(self.order.in_amount_raw),
            "outputAmount": str(self.order.out_amount_raw),
            "priceImpact": self.order.price_impact_pct,
            "slippageBps": self.order.slippage_bps,
        }


__all__ = [
    "NATIVE_SOL_MINT",
    "USDC_MINT",
    "NATIVE_SOL_DECIMALS",
    "SELL_ALL_THRESHOLD",
    "to_raw_units",
    "to_ui_amount",
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
