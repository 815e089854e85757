"""ChatSessionManager — current chat session plus a bounded, newest-first history."""

from __future__ import annotations

import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from kube_context.chat.models import ChatMessage, ChatSession, ResourceContext, utc_now
from kube_context.utils.logger import get_logger

logger = get_logger(__name__)

MAX_SESSIONS = 50
SESSIONS_KEY = "aiChatSessions"
LEGACY_KEY = "aiHistory"


class SessionStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class InMemorySessionStore:
    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileSessionStore:
    """Key/value store backed by a single JSON document."""

    def __init__(self, store_path: str = "./data/chat/sessions.json"):
        self._store_path = store_path
        directory = os.path.dirname(store_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(store_path):
            with open(store_path, "w") as f:
                json.dump({}, f)

    def _load(self) -> dict:
        with open(self._store_path) as f:
            return json.load(f)

    def _save(self, data: dict) -> None:
        with open(self._store_path, "w") as f:
            json.dump(data, f, default=str)

    def get(self, key: str) -> Any:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)


def _from_millis(value: Any) -> datetime:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return utc_now()


class ChatSessionManager:
    def __init__(self, store: SessionStore):
        self._store = store
        self._current: Optional[ChatSession] = None

    def start_session(
        self,
        context: Optional[ResourceContext] = None,
        model: str = "",
        provider: str = "",
    ) -> ChatSession:
        now = utc_now()
        self._current = ChatSession(
            id=self._generate_id(),
            resource_context=context,
            model=model,
            provider=provider,
            created_at=now,
            updated_at=now,
        )
        return self._current

    def add_message(self, role: str, content: str) -> None:
        if self._current is None:
            return
        message = ChatMessage(role=role, content=content)
        self._current.messages.append(message)
        self._current.updated_at = message.timestamp

    def get_current_session(self) -> Optional[ChatSession]:
        return self._current

    def save_current_session(self) -> None:
        if self._current is None or not self._current.messages:
            return
        sessions = [s for s in self._read_sessions() if s.id != self._current.id]
        sessions.insert(0, self._current)
        self._enforce_limit_and_save(sessions)

    def get_history(self) -> list[ChatSession]:
        return self._read_sessions()

    def load_session(self, session_id: str) -> Optional[ChatSession]:
        return next((s for s in self._read_sessions() if s.id == session_id), None)

    def delete_session(self, session_id: str) -> None:
        sessions = [s for s in self._read_sessions() if s.id != session_id]
        self._write_sessions(sessions)

    def clear_history(self) -> None:
        self._store.set(SESSIONS_KEY, [])

    def migrate_legacy_history(self) -> int:
        """Convert legacy prompt/response history into sessions. Returns the number migrated."""
        legacy = self._store.get(LEGACY_KEY)
        if not isinstance(legacy, list) or not legacy:
            return 0

        existing = self._read_sessions()
        existing_ids = {s.id for s in existing}
        migrated: list[ChatSession] = []

        for item in legacy:
            if not isinstance(item, dict) or item.get("id") in existing_ids:
                continue
            timestamp = _from_millis(item.get("timestamp"))

            messages: list[ChatMessage] = []
            conversation = item.get("conversation")
            if isinstance(conversation, list):
                for msg in conversation:
                    msg = msg if isinstance(msg, dict) else {}
                    messages.append(ChatMessage(
                        role="assistant" if msg.get("role") == "assistant" else "user",
                        content=str(msg.get("content") or ""),
                        timestamp=timestamp,
                    ))
            else:
                if item.get("prompt"):
                    messages.append(ChatMessage(role="user", content=str(item["prompt"]), timestamp=timestamp))
                if item.get("response"):
                    messages.append(ChatMessage(role="assistant", content=str(item["response"]), timestamp=timestamp))

            if not messages:
                continue

            context = None
            if item.get("resourceName"):
                context = ResourceContext(name=item["resourceName"], type=item.get("resourceType") or "Unknown")

            migrated.append(ChatSession(
                id=item.get("id") or self._generate_id(),
                messages=messages,
                resource_context=context,
                model=item.get("model") or "",
                provider=item.get("provider") or "",
                created_at=timestamp,
                updated_at=timestamp,
            ))

        if migrated:
            self._enforce_limit_and_save(existing + migrated)
        self._store.set(LEGACY_KEY, [])
        logger.info("Migrated legacy chat history", extra={"action": "migrate_history", "count": len(migrated)})
        return len(migrated)

    def _read_sessions(self) -> list[ChatSession]:
        data = self._store.get(SESSIONS_KEY)
        if not isinstance(data, list):
            return []
        sessions = []
        for item in data:
            try:
                sessions.append(ChatSession.model_validate(item))
            except ValidationError:
                logger.warning("Skipping unreadable chat session", extra={"action": "session_invalid"})
        return sessions

    def _write_sessions(self, sessions: list[ChatSession]) -> None:
        self._store.set(SESSIONS_KEY, [s.model_dump(mode="json", by_alias=True) for s in sessions])

    def _enforce_limit_and_save(self, sessions: list[ChatSession]) -> None:
        if len(sessions) > MAX_SESSIONS:
            sessions = sorted(sessions, key=lambda s: s.created_at, reverse=True)[:MAX_SESSIONS]
        self._write_sessions(sessions)

    @staticmethod
    def _generate_id() -> str:
        return f"sess_{uuid.uuid4().hex[:12]}"
