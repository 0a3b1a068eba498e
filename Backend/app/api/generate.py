# app/api/generate.py
"""
Generation trigger and run status.
"""
import secrets
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.logging import log
from app.models.workflow import GenerationRequest
from app.sandbox.templates import get_template
from app.workflow import engine
from app.workflow.state import RunStateManager

router = APIRouter(tags=["Generate"])


class GenerateBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional here so a missing prompt gets our 400, not FastAPI's 422
    prompt: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    template_id: Optional[str] = Field(default=None, alias="templateId")
    port: Optional[int] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/generate")
async def generate(body: GenerateBody):
    """
    Validate the request and start a generation run in the background.

    The response only confirms the run was queued; follow progress over
    /ws/{sessionId} or GET /api/runs/{sessionId}.
    """
    if not body.prompt or not body.prompt.strip():
        return _error(400, "prompt is required")

    if body.port is not None and body.port < 0:
        return _error(400, "port must be positive")

    session_id = body.session_id or secrets.token_urlsafe(12)
    template_id = body.template_id or settings.workflow.default_template
    template = get_template(template_id)

    if template is None and settings.workflow.strict_templates:
        return _error(400, f"unknown template: {template_id}")

    request = GenerationRequest(
        prompt=body.prompt,
        session_id=session_id,
        template_id=template_id,
        port=body.port or settings.workflow.default_port,
    )

    record = await RunStateManager.try_start(session_id, template_id)
    if record is None:
        return _error(409, f"generation already running for session {session_id}")

    engine.dispatch(request)
    log("API", f"📨 Generation queued (template={template_id}, port={request.port})", project_id=session_id)

    return {
        "status": "started",
        "sessionId": session_id,
        "message": f"Generation started. Follow progress at /ws/{session_id}.",
    }


@router.get("/api/runs/{session_id}")
async def get_run(session_id: str):
    """Latest run recorded for a session."""
    record = RunStateManager.get(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No run for session {session_id}")
    return record.to_dict()
