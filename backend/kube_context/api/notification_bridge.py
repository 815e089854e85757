"""Forward engine notifications to WebSocket subscribers."""

from __future__ import annotations

import asyncio
from typing import Any

from kube_context.engine.models import Anomaly
from kube_context.utils.event_emitter import ANOMALY, STORE_UPDATED, NotificationEmitter
from kube_context.utils.logger import get_logger

logger = get_logger(__name__)


class NotificationBridge:
    def __init__(self, connections: Any):
        self._connections = connections
        self._pending: set[asyncio.Task] = set()

    def attach(self, emitter: NotificationEmitter) -> None:
        emitter.on(STORE_UPDATED, self._on_store_updated)
        emitter.on(ANOMALY, self._on_anomaly)

    def detach(self, emitter: NotificationEmitter) -> None:
        emitter.off(STORE_UPDATED, self._on_store_updated)
        emitter.off(ANOMALY, self._on_anomaly)

    def _on_store_updated(self, payload: dict) -> None:
        self._send({"type": STORE_UPDATED, "data": payload})

    def _on_anomaly(self, anomaly: Anomaly) -> None:
        self._send({"type": ANOMALY, "data": anomaly.model_dump(mode="json", by_alias=True)})

    def _send(self, message: dict) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Engine driven from a thread without a loop; nothing to deliver to
            logger.debug("No running loop, notification not broadcast", extra={"action": "bridge_skip", "event_type": message["type"]})
            return
        task = loop.create_task(self._connections.broadcast(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
