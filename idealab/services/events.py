"""
Realtime event bridge.

Events are invalidation signals: they tell subscribed clients that something
changed so they can re-fetch, and carry no authoritative state. Publishing is
best effort. A transport failure is logged and swallowed so that a committed
write is never reported to the caller as failed.
"""

import enum
import logging
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

logger = logging.getLogger(__name__)


class EventNamespace(str, enum.Enum):
    BRAINWRITING = "brainwriting"
    MANDALA = "mandala"
    OSBORN = "osborn"


def topic_for(namespace: EventNamespace, resource_id: int) -> str:
    return f"{EventNamespace(namespace).value}/{resource_id}"


# ── Event variants ──

class UserJoined(BaseModel):
    type: Literal["USER_JOINED"] = "USER_JOINED"
    user_id: Optional[int] = None


class BrainwritingStarted(BaseModel):
    type: Literal["BRAINWRITING_STARTED"] = "BRAINWRITING_STARTED"


class SheetRotated(BaseModel):
    type: Literal["SHEET_ROTATED"] = "SHEET_ROTATED"
    sheet_id: Optional[int] = None
    next_user_id: Optional[int] = None


class AIGenerationCompleted(BaseModel):
    type: Literal["AI_GENERATION_COMPLETED"] = "AI_GENERATION_COMPLETED"
    correlation_id: Optional[str] = None


class AIGenerationFailed(BaseModel):
    type: Literal["AI_GENERATION_FAILED"] = "AI_GENERATION_FAILED"
    correlation_id: Optional[str] = None
    error_message: Optional[str] = None


BrainwritingEvent = Annotated[
    Union[UserJoined, BrainwritingStarted, SheetRotated],
    Field(discriminator="type"),
]
AIGenerationEvent = Annotated[
    Union[AIGenerationCompleted, AIGenerationFailed],
    Field(discriminator="type"),
]
Event = Annotated[
    Union[UserJoined, BrainwritingStarted, SheetRotated, AIGenerationCompleted, AIGenerationFailed],
    Field(discriminator="type"),
]

event_adapter = TypeAdapter(Event)


def envelope(event: BaseModel) -> dict:
    """Wire shape delivered to subscribers."""
    return {"event": event.model_dump(mode="json")}


def parse_envelope(data: dict):
    return event_adapter.validate_python(data["event"])


class EventPublisher:
    """Fire-and-forget publisher over a transport from ``services.pubsub``."""

    def __init__(self, transport):
        self.transport = transport

    async def publish(self, brainwriting_id: int, event: BrainwritingEvent) -> None:
        await self._send(topic_for(EventNamespace.BRAINWRITING, brainwriting_id), event)

    async def publish_ai_result(
        self,
        namespace: EventNamespace,
        resource_id: int,
        event: AIGenerationEvent,
    ) -> None:
        await self._send(topic_for(namespace, resource_id), event)

    async def _send(self, topic: str, event: BaseModel) -> None:
        try:
            receivers = await self.transport.publish(topic, envelope(event))
            logger.debug("Published %s to %s (%s receivers)", event.type, topic, receivers)
        except Exception:
            logger.exception("Failed to publish %s to %s", getattr(event, "type", "?"), topic)
