"""
WebSocket connection management for engine notifications
"""

from fastapi import WebSocket
from typing import List

from kube_context.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """Tracks dashboard sockets subscribed to context notifications."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info("WebSocket connected", extra={"action": "ws_connect", "count": len(self.active_connections)})

    def disconnect(self, websocket: WebSocket):
        self.active_connections = [ws for ws in self.active_connections if ws is not websocket]
        logger.info("WebSocket disconnected", extra={"action": "ws_disconnect", "count": len(self.active_connections)})

    async def broadcast(self, message: dict):
        """Send to every connection; retries once before dropping a socket."""
        disconnected = []
        for ws in list(self.active_connections):
            try:
                await ws.send_json(message)
            except Exception:
                try:
                    await ws.send_json(message)
                except Exception as e:
                    logger.warning("WebSocket send failed after retry", extra={"action": "ws_send_error", "extra": str(e)})
                    disconnected.append(ws)
        for ws in disconnected:
            self.disconnect(ws)


manager = ConnectionManager()
