# app/api/sandbox.py
"""
E2B sandbox session routes.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException

from app.core.config import settings
from app.core.exceptions import SandboxError
from app.core.logging import log
from app.sandbox import get_preview_manager, get_session_store
from app.sandbox.launcher import ServerLauncher

router = APIRouter(prefix="/api/sandbox", tags=["Sandbox"])


@router.get("/sessions")
async def list_sessions():
    """List cached sandbox sessions."""
    store = get_session_store()
    sessions = store.list_sessions()
    return {"sessions": sessions, "count": len(sessions)}


@router.get("/previews")
async def list_previews():
    """List the latest preview URL per session."""
    return get_preview_manager().list_previews()


@router.get("/by-id/{sandbox_id}")
async def connect_sandbox(sandbox_id: str, port: Optional[int] = None):
    """Reattach to a running sandbox by its E2B id and report its preview URL."""
    try:
        handle = await get_session_store().connect(sandbox_id)
    except SandboxError as e:
        log("API", f"⚠️ Could not connect to {sandbox_id}: {e.message}")
        raise HTTPException(status_code=404, detail=f"Sandbox {sandbox_id} not reachable")

    port = port or settings.workflow.default_port
    return {
        "sandbox_id": handle.sandbox_id,
        "port": port,
        "preview_url": ServerLauncher.preview_url(handle, port),
    }


@router.get("/{session_id}/preview")
async def get_preview(session_id: str):
    preview = get_preview_manager().get_preview(session_id)
    if preview is None:
        raise HTTPException(status_code=404, detail=f"No preview for session {session_id}")
    return {"session_id": session_id, **preview}


@router.delete("/{session_id}")
async def destroy_sandbox(session_id: str):
    """Kill the session's sandbox and forget it."""
    destroyed = await get_session_store().destroy(session_id)
    if not destroyed:
        raise HTTPException(status_code=404, detail=f"No sandbox for session {session_id}")

    get_preview_manager().stop_preview(session_id)
    log("API", "🗑️ Sandbox destroyed on request", project_id=session_id)
    return {"destroyed": True, "session_id": session_id}
