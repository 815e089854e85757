"""Chat session models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import Field

from kube_context.engine.models import CamelModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceContext(CamelModel):
    name: str
    type: str
    namespace: Optional[str] = None


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class ChatSession(CamelModel):
    id: str
    messages: list[ChatMessage] = Field(default_factory=list)
    resource_context: Optional[ResourceContext] = None
    cluster_context: Optional[str] = None
    model: str = ""
    provider: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
