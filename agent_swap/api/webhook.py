"""
Webhook API Endpoint

Receives trade events from the agent platform and runs them through the swap
pipeline.
"""

import hmac
import logging
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, ValidationError

from ..container import ServiceContainer, get_container
from ..core.events import WebhookEvent
from ..core.handlers import UnknownEventError

logger = logging.getLogger(__name__)
router = APIRouter()


class WebhookResponse(BaseModel):
    """Response after processing a webhook."""

    success: bool
    event: str
    timestamp: Optional[str] = None
    agentId: str
    result: Dict[str, Any]


def _check_secret(container: ServiceContainer, provided: Optional[str]) -> None:
    expected = container.settings.webhook_secret
    if not expected:
        return
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")


def _validation_detail(exc: ValidationError) -> List[Dict[str, Any]]:
    return exc.errors(include_url=False, include_context=False, include_input=False)


@router.post("/webhook", response_model=WebhookResponse)
async def receive_webhook(
    request: Request,
    container: ServiceContainer = Depends(get_container),
    x_webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
):
    """Process an ``agentTransactions`` or ``tradeSignals`` event."""
    _check_secret(container, x_webhook_secret)

    try:
        payload = WebhookEvent.model_validate_json(await request.body())
    except ValidationError as e:
        logger.warning("Invalid webhook envelope: %s", e)
        raise HTTPException(status_code=400, detail=_validation_detail(e))

    structlog.contextvars.bind_contextvars(
        event_kind=payload.event,
        agent_id=payload.agent_id,
        event_id=payload.data.get("id"),
    )
    logger.info("Received webhook event %s at %s for agent %s", payload.event, payload.timestamp, payload.agent_id)

    try:
        result = await container.handlers.dispatch(payload)
    except UnknownEventError as e:
        logger.warning("Unknown event type: %s", e.event)
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        logger.warning("Invalid %s payload: %s", payload.event, e)
        raise HTTPException(status_code=400, detail=_validation_detail(e))
    finally:
        structlog.contextvars.unbind_contextvars("event_kind", "agent_id", "event_id")

    logger.info("Webhook processing result: success=%s", result.get("success"))
    return WebhookResponse(
        success=True,
        event=payload.event,
        timestamp=payload.timestamp,
        agentId=payload.agent_id,
        result=result,
    )
