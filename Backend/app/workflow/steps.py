# app/workflow/steps.py
"""
Durable Steps

Minimal in-process stand-in for a durable-execution substrate:

    result = await step.run("get-sandbox", fetch_sandbox)

- A completed step id is never executed again; its memoized (JSON) result
  is replayed instead.
- A step that raised is re-executed on the next pass.
- Step ids must be unique within one pass of the workflow function.

Memoized results can be persisted under CHECKPOINT_DIR/<run_id>.json so a
restarted process that resubmits the same request (same run_id) replays it.
The file is removed by clear() once the run is over.
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from app.core.exceptions import StepError
from app.core.logging import log


class StepRunner:
    """Memoizes step results for one workflow run."""

    def __init__(self, run_id: str, checkpoint_dir: Optional[Union[str, Path]] = None):
        self.run_id = run_id
        self.checkpoint_dir = Path(checkpoint_dir) if checkpoint_dir else None

        self._completed: Dict[str, Any] = {}
        self._seen: Set[str] = set()
        self.executions: Dict[str, int] = {}
        self.passes = 0

        if self.checkpoint_dir:
            self._load()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def begin_pass(self) -> None:
        """Start a new pass of the workflow function (first run or retry)."""
        self._seen.clear()
        self.passes += 1

    async def run(self, step_id: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Execute fn once per run, replaying its result on later passes.

        The returned value is always the JSON round-tripped form, so first
        execution and replay look identical to the caller.
        """
        if step_id in self._seen:
            raise StepError(step_id, "duplicate step id in one pass")
        self._seen.add(step_id)

        if step_id in self._completed:
            log("STEP", f"⏭️ Replaying {step_id}", project_id=self.run_id)
            return self._completed[step_id]

        self.executions[step_id] = self.executions.get(step_id, 0) + 1
        log("STEP", f"▶️ Running {step_id}", project_id=self.run_id)
        value = await fn()

        try:
            stored = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StepError(step_id, f"result is not JSON-serializable: {e}")

        self._completed[step_id] = stored
        self._save()
        return stored

    def is_completed(self, step_id: str) -> bool:
        return step_id in self._completed

    def clear(self) -> None:
        """Forget all memoized results (and the checkpoint file)."""
        self._completed.clear()
        path = self._path()
        if path and path.exists():
            path.unlink()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _path(self) -> Optional[Path]:
        if not self.checkpoint_dir:
            return None
        return self.checkpoint_dir / f"{self.run_id}.json"

    def _save(self) -> None:
        path = self._path()
        if path is None:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps({
                    "run_id": self.run_id,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                    "steps": self._completed,
                }, indent=2),
                encoding="utf-8",
            )
            log("CHECKPOINT", f"📸 Saved {len(self._completed)} step(s)", project_id=self.run_id)
        except OSError as e:
            log("CHECKPOINT", f"⚠️ Failed to save checkpoint: {e}", project_id=self.run_id)

    def _load(self) -> None:
        path = self._path()
        if path is None or not path.exists():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            self._completed = dict(data.get("steps", {}))
            log("CHECKPOINT", f"📂 Loaded {len(self._completed)} step(s)", project_id=self.run_id)
        except (OSError, ValueError) as e:
            log("CHECKPOINT", f"⚠️ Failed to load checkpoint: {e}", project_id=self.run_id)
