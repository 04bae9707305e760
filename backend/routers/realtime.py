import asyncio
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from core.auth import SupabaseAuth, get_supabase_auth
from core.realtime import RealtimeHub, get_realtime_hub

logger = logging.getLogger(__name__)

router = APIRouter()

# Application close code for a rejected token
WS_UNAUTHORIZED = 4401


async def _pump_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        await websocket.send_json(event.to_message())


async def _read_client(websocket: WebSocket, hub: RealtimeHub, client_id: str) -> None:
    while True:
        try:
            message = await websocket.receive_json()
        except ValueError:
            logger.info("Ignoring non-JSON frame from realtime client %s", client_id)
            continue
        if isinstance(message, dict) and message.get("type") == "editing":
            item_id = message.get("item_id")
            hub.set_editing(client_id, str(item_id) if item_id else None)


@router.websocket("/ws/inventory")
async def inventory_channel(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    hub: RealtimeHub = Depends(get_realtime_hub),
    auth: SupabaseAuth = Depends(get_supabase_auth),
):
    """
    Shared inventory channel.

    Clients receive `inventory-updated` and `presence-sync` events and may send
    `{"type": "editing", "item_id": ...}` to announce what they are editing.
    """
    user = await auth.verify(token) if token else None
    if user is None:
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    await websocket.accept()
    client_id = uuid.uuid4().hex
    queue = hub.subscribe()
    hub.join(client_id, user.id, user.email)

    writer = asyncio.create_task(_pump_events(websocket, queue))
    try:
        await _read_client(websocket, hub, client_id)
    except WebSocketDisconnect:
        logger.info("Realtime client %s disconnected", client_id)
    finally:
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)
        hub.leave(client_id)
        hub.unsubscribe(queue)
