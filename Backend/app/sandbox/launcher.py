"""
Server Launcher
Starts the generated project's dev server inside the sandbox and turns the
outcome into an AttemptResult. Never raises for launch failures.
"""

from typing import List, Optional

from app.core.config import settings
from app.core.logging import log, log_attempt
from app.lib.monitoring import record_launch_attempt
from app.models.workflow import AttemptResult

from .classifier import FailureClassifier, HeuristicClassifier
from .environment import SandboxHandle
from .templates import DEFAULT_START_COMMAND


class OutputBuffer:
    """Accumulates stream chunks as they arrive."""

    def __init__(self) -> None:
        self._chunks: List[str] = []

    def append(self, chunk: str) -> None:
        self._chunks.append(chunk)

    @property
    def text(self) -> str:
        return "".join(self._chunks)


class ServerLauncher:
    """
    Runs the start command with a fixed timeout, streaming stdout/stderr
    into buffers, and classifies the result.
    """

    def __init__(
        self,
        classifier: Optional[FailureClassifier] = None,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.classifier = classifier or HeuristicClassifier()
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.sandbox.launch_timeout_seconds
        self.max_attempts = max_attempts or settings.workflow.max_self_heal_attempts

    async def launch(
        self,
        handle: SandboxHandle,
        port: int,
        attempt: int = 1,
        start_command: str = DEFAULT_START_COMMAND,
        session_id: Optional[str] = None,
    ) -> AttemptResult:
        stdout = OutputBuffer()
        stderr = OutputBuffer()
        preview_url = self.preview_url(handle, port)
        command = start_command.format(port=port)

        await self._free_port(handle, port, session_id)

        log("LAUNCH", f"🚀 Attempt {attempt}: {command}", project_id=session_id)
        try:
            exit_code = await handle.run_command(
                command,
                timeout=self.timeout_seconds,
                on_stdout=stdout.append,
                on_stderr=stderr.append,
            )
            verdict = self.classifier.classify(exit_code, stdout.text, stderr.text)
            result = AttemptResult(
                attempt=attempt,
                success=verdict.success,
                preview_url=preview_url,
                error=verdict.error,
            )
        except Exception as e:
            # Timeouts and transport errors are launch failures, not crashes
            message = str(e) or stderr.text or type(e).__name__
            result = AttemptResult(
                attempt=attempt,
                success=False,
                preview_url=preview_url,
                error=message,
            )

        record_launch_attempt(result.success)
        log_attempt("LAUNCH", attempt, self.max_attempts, result.success, result.error, project_id=session_id)
        return result

    @staticmethod
    def preview_url(handle: SandboxHandle, port: int) -> str:
        """Externally reachable URL for port, computed regardless of outcome."""
        return f"https://{handle.get_host(port)}"

    async def _free_port(self, handle: SandboxHandle, port: int, session_id: Optional[str]) -> None:
        """
        Kill whatever still listens on port so a replayed attempt starts clean.
        """
        try:
            await handle.run_command(
                f"fuser -k {port}/tcp >/dev/null 2>&1 || true",
                timeout=settings.sandbox.port_cleanup_timeout_seconds,
            )
        except Exception as e:
            log("LAUNCH", f"⚠️ Port {port} cleanup failed: {e}", project_id=session_id)
