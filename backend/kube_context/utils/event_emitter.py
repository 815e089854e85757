from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from pydantic import BaseModel

from kube_context.utils.logger import get_logger

logger = get_logger(__name__)

STORE_UPDATED = "store_updated"
ANOMALY = "anomaly"

RECENT_NOTIFICATION_LIMIT = 200

Listener = Callable[[Any], None]


class EngineNotification(BaseModel):
    timestamp: datetime
    event_type: Literal["store_updated", "anomaly"]
    payload: Any


class NotificationEmitter:
    """Delivers engine notifications to synchronous listeners and keeps a bounded history."""

    def __init__(self, history_limit: int = RECENT_NOTIFICATION_LIMIT):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._recent: deque[EngineNotification] = deque(maxlen=history_limit)

    def on(self, event_type: str, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def off(self, event_type: str, listener: Listener) -> None:
        self._listeners[event_type] = [l for l in self._listeners[event_type] if l != listener]

    def emit(self, event_type: str, payload: Any) -> EngineNotification:
        """Record the notification, then call every listener; a failing listener does not stop the rest."""
        notification = EngineNotification(
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            payload=payload,
        )
        self._recent.append(notification)

        for listener in list(self._listeners.get(event_type, [])):
            try:
                listener(payload)
            except Exception as e:
                logger.error("Notification listener failed", extra={"action": "listener_failed", "event_type": event_type, "extra": str(e)})

        return notification

    def get_recent(self) -> list[EngineNotification]:
        return list(self._recent)

    def get_recent_by_type(self, event_type: str) -> list[EngineNotification]:
        return [n for n in self._recent if n.event_type == event_type]
