"""WebSocket endpoint relaying a household's pantry events."""

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from src.database import SessionLocal
from src.services.auth import get_user_from_token
from src.services.realtime import PantryEventStream

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/ws", tags=["websocket"])

PING_INTERVAL_SECONDS = 30


def _authenticate(token: str) -> tuple[int | None, int | None]:
    """Resolve the token to (user_id, group_id) without holding a session open."""
    db = SessionLocal()
    try:
        user = get_user_from_token(db, token)
        if user is None:
            return None, None
        return user.id, user.group_id
    finally:
        db.close()


@router.websocket("/pantry")
async def websocket_pantry_sync(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """Stream the caller's group pantry events.

    Authentication via token query parameter (WebSocket doesn't support headers).
    Closes with 4001 for an unknown token and 4003 when the user has no group.
    """
    user_id, group_id = _authenticate(token)
    if user_id is None:
        await websocket.close(code=4001, reason="Invalid token")
        return
    if group_id is None:
        await websocket.close(code=4003, reason="User is not a member of any group")
        return

    await websocket.accept()
    logger.info(f"WebSocket connected: user={user_id}, group={group_id}")
    stream = PantryEventStream(group_id)

    async def relay_events() -> None:
        async for event in stream.events():
            await websocket.send_json(event.model_dump(mode="json"))

    async def keep_alive() -> None:
        while True:
            await asyncio.sleep(PING_INTERVAL_SECONDS)
            await websocket.send_json({"type": "ping"})

    async def drain_client() -> None:
        # Clients only answer pings; a receive error means they went away
        while True:
            await websocket.receive_json()

    tasks = [
        asyncio.create_task(relay_events()),
        asyncio.create_task(keep_alive()),
        asyncio.create_task(drain_client()),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error(f"WebSocket error for group {group_id}: {error}")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await stream.close()
        logger.info(f"WebSocket disconnected: user={user_id}, group={group_id}")
