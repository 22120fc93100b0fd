"""
Slippage policy.

Exits tolerate more slippage than entries: a position that cannot be closed
is worse than a costly close.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from enum import Enum
from typing import Iterable, Optional

from .models import NATIVE_SOL_MINT

MAX_SLIPPAGE_BPS = 10_000

HIGH_RISK_EXIT_BPS = 1000
EXIT_BPS = 800
SELL_BPS = 500
BUY_BPS = 300
ENTRY_BPS = 100


class SwapDirection(str, Enum):
    SELL_FOR_NATIVE = "sell_for_native"    # token -> SOL
    BUY_WITH_NATIVE = "buy_with_native"    # SOL -> token
    ENTRY = "entry"                        # trade signals and token -> token


def classify_direction(input_mint: str, output_mint: str) -> SwapDirection:
    if output_mint == NATIVE_SOL_MINT and input_mint != NATIVE_SOL_MINT:
        return SwapDirection.SELL_FOR_NATIVE
    if input_mint == NATIVE_SOL_MINT and output_mint != NATIVE_SOL_MINT:
        return SwapDirection.BUY_WITH_NATIVE
    return SwapDirection.ENTRY


def hint_to_bps(hint: Optional[float]) -> Optional[int]:
    """Convert a fractional slippage hint (0.005 == 0.5%) to basis points."""
    if hint is None:
        return None
    try:
        value = Decimal(str(hint))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value < 0:
        return None
    bps = int((value * 10_000).to_integral_value(rounding=ROUND_FLOOR))
    return min(bps, MAX_SLIPPAGE_BPS)


def is_high_risk_token(
    mint: str,
    symbol: Optional[str] = None,
    *,
    mint_suffixes: Iterable[str] = ("pump", "moon"),
    risky_symbols: Iterable[str] = (),
) -> bool:
    """Heuristic: launchpad vanity mints or explicitly listed symbols."""
    lowered = mint.lower()
    if any(lowered.endswith(suffix.lower()) for suffix in mint_suffixes if suffix):
        return True
    if symbol:
        wanted = symbol.upper()
        return any(wanted == risky.upper() for risky in risky_symbols)
    return False


def select_slippage_bps(
    direction: SwapDirection,
    is_exit: bool,
    is_high_risk: bool,
    hint: Optional[float] = None,
) -> int:
    if direction == SwapDirection.SELL_FOR_NATIVE:
        if is_high_risk:
            return HIGH_RISK_EXIT_BPS
        if is_exit:
            return EXIT_BPS
        return SELL_BPS

    hinted = hint_to_bps(hint)
    if direction == SwapDirection.BUY_WITH_NATIVE:
        return hinted if hinted is not None else BUY_BPS
    return hinted if hinted is not None else ENTRY_BPS


__all__ = [
    "SwapDirection",
    "classify_direction",
    "hint_to_bps",
    "is_high_risk_token",
    "select_slippage_bps",
]
