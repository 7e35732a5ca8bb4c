"""
SoulSocial Backend: Realtime Change Broadcaster
=================================================

What:  Keeps the set of connected realtime (WebSocket) clients and fans out
       change events to all of them.
Why:   The browser feed re-fetches GET /api/posts whenever it hears
       `postsUpdated`; this is the only push channel the frontend uses.
How:   connect() accepts and registers a socket, disconnect() removes it,
       publish() sends {"event": <name>} to every registered socket.
Who:   One instance per application (app.state.broadcaster), injected into
       routes with Depends(get_broadcaster).

Delivery Semantics:
    - Best effort: no acknowledgements, no retries, no replay for clients
      that connect after an event was published.
    - No coalescing: N mutations publish N events.
    - Sends go out concurrently, each bounded by REALTIME_SEND_TIMEOUT, so
      one stalled client cannot delay the others.
    - A socket whose send fails or times out is dropped from the registry.
"""

import asyncio
import logging
from typing import Any, Dict, List, Set

from starlette.websockets import WebSocket

from app.config import settings

logger = logging.getLogger(__name__)

# Event name the frontend listens for
POSTS_UPDATED = "postsUpdated"


class Broadcaster:
    """
    In-process registry of realtime connections.

    Thread Safety:
        Safe for a single-process async server (all access happens on the
        event loop). Multiple workers each keep their own registry, so a
        mutation only reaches clients connected to the same worker.
    """

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept the handshake and start delivering events to this client."""
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("Realtime client connected (%d active)", len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        """Stop delivering events to this client. Unknown sockets are ignored."""
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info("Realtime client disconnected (%d active)", len(self._connections))

    async def publish(self, event: str = POSTS_UPDATED) -> int:
        """
        Send one zero-payload event to every connected client.

        Returns:
            Number of clients the event was delivered to.
        """
        message: Dict[str, Any] = {"event": event}

        # Copy: disconnect() may run while we await the sends
        targets: List[WebSocket] = list(self._connections)
        results = await asyncio.gather(
            *(self._send(websocket, message) for websocket in targets)
        )

        delivered = 0
        for websocket, ok in zip(targets, results):
            if ok:
                delivered += 1
            else:
                self.disconnect(websocket)

        logger.debug("Published %s to %d client(s)", event, delivered)
        return delivered

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        """Send to one client within realtime_send_timeout. False means drop it."""
        try:
            await asyncio.wait_for(
                websocket.send_json(message), timeout=settings.realtime_send_timeout
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Dropping realtime client: send timed out after %.1fs",
                settings.realtime_send_timeout,
            )
        except Exception as e:
            logger.warning("Dropping realtime client after failed send: %s", str(e))
        return False
