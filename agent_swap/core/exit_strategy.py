"""
Exit amount reconciliation.

An exit request says how much to sell in the agent platform's (virtual)
terms. The wallet's real holdings can differ, so the requested amount is
mapped onto the actual balance:

    virtual fetch failed          -> compare request to actual directly
        actual <= requested       -> FALLBACK_EXIT_ALL
        otherwise                 -> FALLBACK_EXIT_WEBHOOK (sell the request)
    virtual balance is zero       -> FULL_EXIT_ZERO_VIRTUAL
    requested >= virtual          -> FULL_EXIT_COMPLETE
    otherwise                     -> PARTIAL_EXIT (same fraction of actual)

No branch ever sells more than the wallet holds. Raw amounts are truncated,
never rounded up.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from ..cache import LookupCache
from .balances import ActualBalanceProvider, VirtualBalanceProvider
from .errors import CalculationError, NoBalanceError, SwapPipelineError
from .models import ActualBalanceEntry, ExitPlan, ExitStrategy, to_raw_units

logger = logging.getLogger(__name__)

ONE = Decimal("1")

Number = Union[Decimal, int, float, str]


def _as_decimal(value: Number, field_name: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise CalculationError(f"Invalid {field_name}: {value!r}") from exc
    if not result.is_finite():
        raise CalculationError(f"Invalid {field_name}: {value!r}")
    return result


def _full_exit(
    strategy: ExitStrategy,
    actual: ActualBalanceEntry,
    requested: Decimal,
    virtual_balance: Optional[Decimal],
    fallback_mode: bool,
) -> ExitPlan:
    return ExitPlan(
        strategy=strategy,
        mint=actual.mint,
        decimals=actual.decimals,
        percentage_to_sell=ONE,
        amount_to_sell_ui=actual.ui_amount,
        amount_to_sell_raw=actual.raw_units,
        virtual_balance=virtual_balance,
        actual_balance=actual.ui_amount,
        requested_amount=requested,
        fallback_mode=fallback_mode,
    )


def _partial_exit(
    strategy: ExitStrategy,
    actual: ActualBalanceEntry,
    requested: Decimal,
    virtual_balance: Optional[Decimal],
    percentage: Decimal,
    amount_ui: Decimal,
    fallback_mode: bool,
) -> ExitPlan:
    actual_ui = actual.ui_amount
    amount_ui = min(amount_ui, actual_ui)
    amount_raw = min(to_raw_units(amount_ui, actual.decimals), actual.raw_units)
    return ExitPlan(
        strategy=strategy,
        mint=actual.mint,
        decimals=actual.decimals,
        percentage_to_sell=min(percentage, ONE),
        amount_to_sell_ui=amount_ui,
        amount_to_sell_raw=amount_raw,
        virtual_balance=virtual_balance,
        actual_balance=actual_ui,
        requested_amount=requested,
        fallback_mode=fallback_mode,
    )


def plan_exit(
    requested_amount: Number,
    virtual_balance: Optional[Number],
    actual: ActualBalanceEntry,
) -> ExitPlan:
    """Compute the exit plan from already-fetched balances.

    ``virtual_balance`` is None when the virtual ledger could not be read,
    which puts the plan in fallback mode.
    """
    requested = _as_decimal(requested_amount, "requested amount")
    if requested <= 0:
        raise CalculationError(f"Requested exit amount must be positive, got {requested}")
    if actual.is_empty:
        raise NoBalanceError(actual.mint, actual.symbol or None)

    actual_ui = actual.ui_amount

    if virtual_balance is None:
        if actual_ui <= requested:
            return _full_exit(ExitStrategy.FALLBACK_EXIT_ALL, actual, requested, None, True)
        return _partial_exit(
            ExitStrategy.FALLBACK_EXIT_WEBHOOK,
            actual,
            requested,
            None,
            percentage=requested / actual_ui,
            amount_ui=requested,
            fallback_mode=True,
        )

    virtual = _as_decimal(virtual_balance, "virtual balance")

    if virtual <= 0:
        return _full_exit(ExitStrategy.FULL_EXIT_ZERO_VIRTUAL, actual, requested, virtual, False)

    if requested >= virtual:
        return _full_exit(ExitStrategy.FULL_EXIT_COMPLETE, actual, requested, virtual, False)

    percentage = requested / virtual
    return _partial_exit(
        ExitStrategy.PARTIAL_EXIT,
        actual,
        requested,
        virtual,
        percentage=percentage,
        amount_ui=actual_ui * percentage,
        fallback_mode=False,
    )


class ExitStrategyCalculator:
    """Decides how much of the real position to sell for an exit request."""

    def __init__(self, actual: ActualBalanceProvider, virtual: VirtualBalanceProvider):
        self._actual = actual
        self._virtual = virtual

    async def compute_exit_plan(
        self,
        requested_amount: Number,
        mint: str,
        symbol: Optional[str],
        agent_id: str,
        cache: Optional[LookupCache] = None,
    ) -> ExitPlan:
        """
        Compute an exit plan for selling ``requested_amount`` of ``mint``.

        The virtual and actual balances are read concurrently. A failed virtual
        read switches to fallback mode; a failed actual read ends the flow.

        Raises:
            NoBalanceError: The wallet holds none of the token.
            TransportError: The actual balance could not be read.
            CalculationError: Anything else went wrong.
        """
        virtual_result, actual_result = await asyncio.gather(
            self._virtual.get_virtual_balance(agent_id, mint, symbol),
            self._actual.get_actual_balance(mint, cache),
            return_exceptions=True,
        )

        actual = self._unwrap_actual(actual_result)
        if not actual.symbol and symbol:
            actual = replace(actual, symbol=symbol)

        virtual_balance: Optional[Decimal] = None
        if isinstance(virtual_result, BaseException):
            if not isinstance(virtual_result, Exception):
                raise virtual_result
            logger.warning(
                "Virtual balance unavailable for agent %s (%s), using fallback mode",
                agent_id,
                virtual_result,
            )
        else:
            virtual_balance = virtual_result

        try:
            plan = plan_exit(requested_amount, virtual_balance, actual)
        except SwapPipelineError:
            raise
        except Exception as exc:
            raise CalculationError(f"Exit calculation failed: {exc}") from exc

        logger.info(
            "Exit plan %s for %s: selling %s of %s (%.2f%%), virtual=%s requested=%s",
            plan.strategy.value,
            symbol or mint,
            plan.amount_to_sell_ui,
            plan.actual_balance,
            float(plan.percentage_to_sell * 100),
            plan.virtual_balance,
            plan.requested_amount,
        )
        return plan

    @staticmethod
    def _unwrap_actual(result: Any) -> ActualBalanceEntry:
        if isinstance(result, ActualBalanceEntry):
            return result
        if isinstance(result, SwapPipelineError):
            raise result
        if isinstance(result, Exception):
            raise CalculationError(f"Actual balance lookup failed: {result}") from result
        if isinstance(result, BaseException):
            raise result
        raise CalculationError(f"Unexpected actual balance result: {result!r}")


__all__ = ["ExitStrategyCalculator", "plan_exit"]
