"""
Realtime router — pushes brainwriting events to the browser over a WebSocket.

Messages are the envelopes produced by ``services.events``:
``{"event": {"type": "SHEET_ROTATED", ...}}``. Clients re-fetch state on
receipt; nothing is sent from the client except keep-alives.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy import select

from idealab.dependencies import get_session_factory
from idealab.models import Brainwriting, BrainwritingUser
from idealab.routers.auth import COOKIE_KEY, decode_user_id
from idealab.services.events import EventNamespace, topic_for

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _can_watch(session_factory, brainwriting_id: int, user_id: int) -> bool:
    async with session_factory() as db:
        result = await db.execute(select(Brainwriting).where(Brainwriting.id == brainwriting_id))
        brainwriting = result.scalar_one_or_none()
        if brainwriting is None:
            return False
        if brainwriting.user_id == user_id or brainwriting.is_results_public:
            return True
        result = await db.execute(
            select(BrainwritingUser.id).where(
                BrainwritingUser.brainwriting_id == brainwriting_id,
                BrainwritingUser.user_id == user_id,
            )
        )
        return result.first() is not None


async def _forward(websocket: WebSocket, transport, topic: str) -> None:
    async for message in transport.subscribe(topic):
        await websocket.send_json(message)


async def _drain(websocket: WebSocket) -> None:
    """Consume client frames until the socket closes."""
    while True:
        await websocket.receive_text()


@router.websocket("/ws/brainwritings/{brainwriting_id}")
async def brainwriting_events(
    websocket: WebSocket,
    brainwriting_id: int,
    session_factory=Depends(get_session_factory),
):
    user_id = decode_user_id(websocket.cookies.get(COOKIE_KEY))
    if not user_id or not await _can_watch(session_factory, brainwriting_id, user_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    transport = websocket.app.state.publisher.transport
    topic = topic_for(EventNamespace.BRAINWRITING, brainwriting_id)
    logger.info("User %s subscribed to %s", user_id, topic)

    tasks = [
        asyncio.create_task(_forward(websocket, transport, topic)),
        asyncio.create_task(_drain(websocket)),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Realtime stream for %s ended with %r", topic, exc)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("User %s unsubscribed from %s", user_id, topic)
