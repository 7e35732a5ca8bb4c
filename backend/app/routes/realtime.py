"""
SoulSocial Backend: Realtime Channel
======================================

What:  WS /ws, the push channel for `{"event": "postsUpdated"}`.

Clients never need to send anything; incoming frames are read only to notice
when the client goes away.
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.dependencies import get_broadcaster
from app.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> None:
    await broadcaster.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect as e:
        logger.debug("Realtime client closed the connection (code=%s)", e.code)
    finally:
        broadcaster.disconnect(websocket)
