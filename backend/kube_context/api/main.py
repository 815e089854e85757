"""
FastAPI Main Application
Entry point for the context engine API
"""

import os
from typing import Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from kube_context.chat.session import ChatSessionManager, JsonFileSessionStore
from kube_context.config import ContextEngineConfig
from kube_context.engine.engine import ContextEngine
from kube_context.utils.logger import get_logger
from .notification_bridge import NotificationBridge
from .routes import chat_router, router, set_engine, set_session_manager
from .websocket import manager

logger = get_logger("main")


def create_app(
    engine: Optional[ContextEngine] = None,
    session_manager: Optional[ChatSessionManager] = None,
) -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title="Cluster Context Engine API",
        description="Live cluster state, anomalies and token-budgeted prompt context",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = engine or ContextEngine(ContextEngineConfig.from_env())
    if session_manager is None:
        store_path = os.environ.get("CHAT_SESSIONS_PATH", "./data/chat/sessions.json")
        session_manager = ChatSessionManager(JsonFileSessionStore(store_path))
    session_manager.migrate_legacy_history()

    set_engine(engine)
    set_session_manager(session_manager)
    NotificationBridge(manager).attach(engine.emitter)

    app.include_router(router)
    app.include_router(chat_router)

    @app.websocket("/ws/context")
    async def websocket_endpoint(websocket: WebSocket):
        """Pushes store_updated and anomaly notifications"""
        await manager.connect(websocket)
        try:
            await websocket.send_json({
                "type": "connected",
                "data": engine.get_status().model_dump(mode="json", by_alias=True),
            })
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(websocket)

    logger.info("Context engine API created", extra={"action": "app_created"})
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kube_context.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        log_level="info",
    )
