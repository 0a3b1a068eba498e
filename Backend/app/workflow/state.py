"""
Run state management.

Latest run per session, kept in memory. A session runs at most one
workflow at a time.
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from app.models.workflow import RunRecord, RunStatus, WorkflowResult


# Global state storage
_runs: Dict[str, RunRecord] = {}
_tasks: Set[asyncio.Task] = set()

# Lock for start/finish transitions
_run_lock = asyncio.Lock()


class RunStateManager:
    """Tracks dispatched runs across the application."""

    @staticmethod
    def get(session_id: str) -> Optional[RunRecord]:
        return _runs.get(session_id)

    @staticmethod
    def is_running(session_id: str) -> bool:
        record = _runs.get(session_id)
        return record is not None and record.status in (RunStatus.QUEUED, RunStatus.RUNNING)

    @staticmethod
    async def try_start(session_id: str, template_id: str) -> Optional[RunRecord]:
        """
        Atomically register a new run for session_id.

        Returns:
            The queued RunRecord, or None if a run is already active
        """
        async with _run_lock:
            if RunStateManager.is_running(session_id):
                return None
            record = RunRecord(session_id=session_id, template_id=template_id)
            _runs[session_id] = record
            return record

    @staticmethod
    def mark_running(session_id: str) -> None:
        record = _runs.get(session_id)
        if record:
            record.status = RunStatus.RUNNING

    @staticmethod
    async def complete(session_id: str, result: WorkflowResult) -> None:
        async with _run_lock:
            record = _runs.get(session_id)
            if record:
                record.status = RunStatus.COMPLETED
                record.result = result
                record.finished_at = datetime.now(timezone.utc)

    @staticmethod
    async def fail(session_id: str, error: str) -> None:
        async with _run_lock:
            record = _runs.get(session_id)
            if record:
                record.status = RunStatus.FAILED
                record.error = error
                record.finished_at = datetime.now(timezone.utc)

    @staticmethod
    def track(task: asyncio.Task) -> None:
        """Hold a reference to a background run until it finishes."""
        _tasks.add(task)
        task.add_done_callback(_tasks.discard)

    @staticmethod
    def clear() -> None:
        _runs.clear()
