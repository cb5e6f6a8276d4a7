"""
Sighting Broadcaster - pushes sighting changes to connected map clients

Map clients either poll GET /api/sightings or keep a WebSocket open on
/ws/sightings. Each message has the form:

    {"type": "created" | "refreshed", "sighting": {...SightingRead...}}
"""

import logging
from typing import Any, Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SightingBroadcaster:
    """Manage WebSocket connections and fan out sighting events."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Map client connected ({len(self.active_connections)} open)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"Map client disconnected ({len(self.active_connections)} open)")

    async def broadcast(self, event: str, sighting: Dict[str, Any]) -> int:
        """
        Send an event to every connected client.

        Connections that fail to receive are dropped.

        Returns:
            Number of clients the event was delivered to
        """
        message = {"type": event, "sighting": sighting}
        delivered = 0
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping map client after send failure: {e}")
                self.disconnect(connection)
        return delivered

    async def close_all(self) -> None:
        """Close every open connection (used on shutdown)."""
        for connection in list(self.active_connections):
            try:
                await connection.close(code=1001)
            except Exception as e:
                logger.debug(f"Error closing map client: {e}")
            self.disconnect(connection)
