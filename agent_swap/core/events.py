"""Inbound trade events from the agent platform."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    AGENT_TRANSACTIONS = "agentTransactions"
    TRADE_SIGNALS = "tradeSignals"


class AgentTransactionData(BaseModel):
    """Payload of an ``agentTransactions`` event."""

    model_config = ConfigDict(extra="allow")

    id: int
    transaction_type: Optional[str] = None
    input_mint: str = Field(min_length=1)
    input_symbol: Optional[str] = None
    input_amount: Decimal = Field(gt=0)
    output_mint: str = Field(min_length=1)
    output_symbol: Optional[str] = None
    output_amount: Optional[Decimal] = None
    slippage: Optional[float] = Field(default=None, ge=0, le=1)


class TradeSignalData(BaseModel):
    """Payload of a ``tradeSignals`` event."""

    model_config = ConfigDict(extra="allow")

    id: int
    token_address: str = Field(min_length=1)
    token_symbol: Optional[str] = None
    price_at_signal: Optional[float] = None
    activation_reason: Optional[str] = None
    trade_amount: Optional[Decimal] = Field(default=None, gt=0, description="SOL to spend")
    slippage: Optional[float] = Field(default=None, ge=0, le=1)


class WebhookEvent(BaseModel):
    """Envelope posted to the webhook endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event: str
    timestamp: Optional[str] = None
    agent_id: str = Field(alias="agentId")
    data: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "EventKind",
    "AgentTransactionData",
    "TradeSignalData",
    "WebhookEvent",
]
