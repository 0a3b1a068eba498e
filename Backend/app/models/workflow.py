# app/models/workflow.py
"""
Value types that flow through a generation run.

Everything a durable step returns must survive a JSON round-trip,
so each type carries to_dict/from_dict.
"""
import hashlib
import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable input of one workflow run."""
    prompt: str
    session_id: str
    template_id: str
    port: int

    def __post_init__(self):
        if not self.prompt or not self.prompt.strip():
            raise ValueError("prompt is required")
        if not self.session_id:
            raise ValueError("session_id is required")
        if self.port <= 0:
            raise ValueError(f"port must be positive, got {self.port}")

    def to_event(self) -> Dict[str, Any]:
        """Event payload consumed by the orchestrator."""
        return {
            "userPrompt": self.prompt,
            "sessionId": self.session_id,
            "templateId": self.template_id,
            "port": self.port,
        }

    @property
    def run_id(self) -> str:
        """Stable id of this run: the same event always maps to the same checkpoint."""
        digest = hashlib.sha256(json.dumps(self.to_event(), sort_keys=True).encode("utf-8")).hexdigest()
        return f"{self.session_id}-{digest[:12]}"


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of a single launch-and-evaluate cycle."""
    attempt: int
    success: bool
    preview_url: str
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttemptResult":
        return cls(
            attempt=int(data["attempt"]),
            success=bool(data["success"]),
            preview_url=data.get("preview_url", ""),
            error=data.get("error", "") or "",
        )


class HealState(str, Enum):
    """Self-heal controller states."""
    IDLE = "idle"
    LAUNCHING = "launching"
    EVALUATING = "evaluating"
    HEALING = "healing"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (HealState.SUCCEEDED, HealState.EXHAUSTED)


@dataclass
class HealOutcome:
    """What the self-heal controller hands back to the orchestrator."""
    result: AttemptResult
    attempts: int
    state: HealState
    transitions: List[HealState] = field(default_factory=list)


@dataclass(frozen=True)
class WorkflowResult:
    """Terminal artifact of a run."""
    sandbox_id: str
    template_id: str
    success: bool
    preview_url: Optional[str] = None
    attempts: Optional[int] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire form (camelCase, optionals omitted when absent)."""
        data: Dict[str, Any] = {
            "sandboxId": self.sandbox_id,
            "templateId": self.template_id,
            "success": self.success,
        }
        if self.preview_url is not None:
            data["previewUrl"] = self.preview_url
        if self.attempts is not None:
            data["attempts"] = self.attempts
        if self.last_error is not None:
            data["lastError"] = self.last_error
        return data


class RunStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunRecord:
    """Bookkeeping for one dispatched run (latest per session)."""
    session_id: str
    template_id: str
    status: RunStatus = RunStatus.QUEUED
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    result: Optional[WorkflowResult] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "sessionId": self.session_id,
            "templateId": self.template_id,
            "status": self.status.value,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
        }
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.error is not None:
            data["error"] = self.error
        return data
