"""Chat session persistence."""

from .models import ChatMessage, ChatSession, ResourceContext
from .session import ChatSessionManager, InMemorySessionStore, JsonFileSessionStore, SessionStore

__all__ = [
    'ChatMessage',
    'ChatSession',
    'ResourceContext',
    'ChatSessionManager',
    'InMemorySessionStore',
    'JsonFileSessionStore',
    'SessionStore',
]
