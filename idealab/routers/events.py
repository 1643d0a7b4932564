"""AI worker callback — relays generation results to the resource's topic."""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from idealab.config import settings
from idealab.dependencies import get_publisher
from idealab.schemas.brainwriting import AIGenerationCallback
from idealab.services.events import (
    AIGenerationCompleted,
    AIGenerationFailed,
    EventNamespace,
    EventPublisher,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


def verify_worker_token(x_worker_token: Optional[str] = Header(default=None)) -> None:
    if not settings.AI_WORKER_TOKEN:
        raise HTTPException(status_code=503, detail="AI worker callbacks are not configured")
    if not x_worker_token or not secrets.compare_digest(x_worker_token, settings.AI_WORKER_TOKEN):
        raise HTTPException(status_code=401, detail="Invalid worker token")


@router.post("/ai-generation", status_code=status.HTTP_202_ACCEPTED, dependencies=[Depends(verify_worker_token)])
async def ai_generation_finished(
    payload: AIGenerationCallback,
    publisher: EventPublisher = Depends(get_publisher),
):
    try:
        namespace = EventNamespace(payload.namespace)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown namespace: {payload.namespace}")

    if payload.status == "completed":
        event = AIGenerationCompleted(correlation_id=payload.correlation_id)
    else:
        event = AIGenerationFailed(
            correlation_id=payload.correlation_id,
            error_message=payload.error_message,
        )

    logger.info("AI generation %s for %s/%s", payload.status, namespace.value, payload.resource_id)
    await publisher.publish_ai_result(namespace, payload.resource_id, event)
    return {"status": "accepted"}
