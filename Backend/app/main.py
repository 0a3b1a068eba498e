# app/main.py
"""
Preview Studio Backend - generate, launch, self-heal
"""
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from starlette.middleware.cors import CORSMiddleware

# Rate limiting
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from dotenv import load_dotenv
load_dotenv()

from app.core.config import settings
from app.core.logging import log
from app.lib.websocket import manager
from app.sandbox import get_session_store

# Print environment status
print("🔑 Environment check:")
print(f"  GEMINI_API_KEY loaded: {bool(settings.llm.gemini_api_key)}")
print(f"  E2B_API_KEY loaded: {bool(settings.sandbox.e2b_api_key)}")
print(f"  Default model: {settings.llm.default_model}")
print(f"  Default template: {settings.workflow.default_template}")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    print("🚀 Preview Studio starting...")
    settings.ensure_directories()

    yield

    print("🔌 Shutting down...")
    # Cached sandboxes keep billing until killed
    await get_session_store().shutdown()


# ---------------------------------------------------------------------------
# APP INITIALIZATION
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Preview Studio",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.manager = manager

# Monitoring
from app.lib.monitoring import register_monitoring
register_monitoring(app)

cors_origins = settings.cors_origins

if cors_origins == ["*"] and not settings.debug:
    print("⚠️ [CORS] Warning: Using allow_origins=['*'] - consider setting CORS_ORIGINS in production")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate Limiting - configure via RATE_LIMIT env var (e.g., "50/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
print(f"🛡️ [SECURITY] Rate limiting enabled: {settings.rate_limit}")


# ---------------------------------------------------------------------------
# WEBSOCKET
# ---------------------------------------------------------------------------

@app.websocket("/ws/{session_id}")
async def websocket_endpoint(websocket: WebSocket, session_id: str):
    """Push-only channel: WORKFLOW_UPDATE messages for one session."""
    await manager.connect(websocket, session_id)
    try:
        while True:
            data = await websocket.receive_json()
            if data.get("type") == "PING":
                await manager.send_json(websocket, {"type": "PONG"})
    except WebSocketDisconnect:
        await manager.disconnect(websocket, session_id)
    except Exception as e:
        log("WS", f"Error: {e}", project_id=session_id)
        await manager.disconnect(websocket, session_id)


# ---------------------------------------------------------------------------
# API ROUTES
# ---------------------------------------------------------------------------

from app.api import health, generate, sandbox

app.include_router(health.router)
app.include_router(generate.router)
app.include_router(sandbox.router)


# ---------------------------------------------------------------------------
# RUN
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        reload_dirs=["app"],
    )
