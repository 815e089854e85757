"""Context engine HTTP endpoints."""

from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from kube_context.api.watch_gate import GenerationGate
from kube_context.chat.models import ResourceContext
from kube_context.chat.session import ChatSessionManager
from kube_context.config import ConfigUpdate
from kube_context.engine.engine import ContextEngine
from kube_context.engine.models import ContextQuery
from kube_context.prompts import build_enhanced_system_prompt, split_kubectl_mode
from kube_context.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/context", tags=["context"])
chat_router = APIRouter(prefix="/api/chat", tags=["chat"])

_engine: Optional[ContextEngine] = None
_session_manager: Optional[ChatSessionManager] = None
_gate = GenerationGate()


def set_engine(engine: ContextEngine) -> None:
    global _engine, _gate
    _engine = engine
    _gate = GenerationGate()


def get_engine() -> ContextEngine:
    global _engine
    if _engine is None:
        _engine = ContextEngine()
    return _engine


def set_session_manager(session_manager: ChatSessionManager) -> None:
    global _session_manager
    _session_manager = session_manager


def get_session_manager() -> ChatSessionManager:
    if _session_manager is None:
        raise HTTPException(status_code=503, detail="Chat history is not configured")
    return _session_manager


def get_gate() -> GenerationGate:
    return _gate


class ResourceEventRequest(BaseModel):
    kind: str
    event_type: Literal["ADDED", "MODIFIED", "DELETED"]
    resource: dict[str, Any]
    generation: Optional[int] = None


class ChatContextRequest(BaseModel):
    message: str
    query: Optional[ContextQuery] = None


class StartSessionRequest(BaseModel):
    resource_context: Optional[ResourceContext] = None
    model: str = ""
    provider: str = ""


class ChatMessageRequest(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class PromptRequest(BaseModel):
    message: str
    base_prompt: str = ""
    cluster_name: Optional[str] = None
    namespace: Optional[str] = None


@router.get("/status")
async def get_status():
    return get_engine().get_status().model_dump(mode="json", by_alias=True)


@router.get("/summary/{kind}")
async def get_summary(kind: str, namespace: Optional[str] = None):
    return get_engine().get_summary(kind, namespace).model_dump(mode="json", by_alias=True)


@router.get("/anomalies")
async def get_anomalies():
    return [a.model_dump(mode="json", by_alias=True) for a in get_engine().get_anomalies()]


@router.get("/config")
async def get_config():
    return get_engine().get_config().model_dump(by_alias=True)


@router.patch("/config")
async def update_config(update: ConfigUpdate):
    return get_engine().update_config(update).model_dump(by_alias=True)


@router.post("/chat-context")
async def build_chat_context(request: ChatContextRequest):
    context = get_engine().build_chat_context(request.message, request.query)
    return {"context": context}


@router.post("/prompt")
async def build_prompt(request: PromptRequest):
    """Assemble the assistant system prompt for a user message, with live cluster state."""
    engine = get_engine()
    is_kubectl, query = split_kubectl_mode(request.message)
    context = engine.build_chat_context(query) if engine.get_status().resource_count > 0 else ""
    kubectl = (request.cluster_name or "", request.namespace or "") if is_kubectl else None
    return {
        "system_prompt": build_enhanced_system_prompt(request.base_prompt, context, kubectl),
        "kubectl": is_kubectl,
        "query": query,
    }


@router.post("/events")
async def ingest_event(event: ResourceEventRequest):
    if not get_gate().is_current(event.kind, event.generation):
        logger.debug("Dropping event from stale watch", extra={"action": "stale_event", "kind": event.kind, "event_type": event.event_type, "generation": event.generation})
        return {"accepted": False}
    get_engine().handle_resource_event(event.kind, event.event_type, event.resource)
    return {"accepted": True}


@router.post("/kinds/{kind}/clear")
async def restart_watch(kind: str):
    """Called when the watch for *kind* restarts; returns the generation new events must carry."""
    generation = get_gate().next_generation(kind)
    get_engine().clear_kind(kind)
    logger.info("Watch restarted", extra={"action": "watch_restart", "kind": kind, "generation": generation})
    return {"kind": kind, "generation": generation}


@router.post("/cluster-switch")
async def cluster_switch():
    get_gate().advance_all()
    get_engine().on_cluster_switch()
    return {"status": "cleared"}


@chat_router.get("/sessions")
async def list_sessions():
    return [s.model_dump(mode="json", by_alias=True) for s in get_session_manager().get_history()]


@chat_router.get("/sessions/{session_id}")
async def get_session(session_id: str):
    session = get_session_manager().load_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session.model_dump(mode="json", by_alias=True)


@chat_router.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    manager = get_session_manager()
    if manager.load_session(session_id) is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    manager.delete_session(session_id)
    return {"status": "deleted"}


@chat_router.post("/sessions")
async def start_session(request: StartSessionRequest):
    """Begin a new current session; it is stored once it has a message."""
    session = get_session_manager().start_session(request.resource_context, request.model, request.provider)
    logger.info("Chat session started", extra={"action": "session_start", "session_id": session.id})
    return session.model_dump(mode="json", by_alias=True)


@chat_router.post("/messages")
async def add_message(request: ChatMessageRequest):
    """Append to the current session and save it to history."""
    manager = get_session_manager()
    session = manager.get_current_session()
    if session is None:
        raise HTTPException(status_code=409, detail="No active chat session")
    manager.add_message(request.role, request.content)
    manager.save_current_session()
    return session.model_dump(mode="json", by_alias=True)
