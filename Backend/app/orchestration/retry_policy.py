# app/orchestration/retry_policy.py
"""
Coarse retry for whole workflow runs.

Rules:
- An unhandled failure re-runs the entire workflow function
- Completed durable steps are replayed, not re-executed
- Linear backoff between passes
- NonRetriableError stops immediately

This is orthogonal to the self-heal loop: a failed dev server launch is a
value, never an exception, so it never reaches this policy.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

from app.core.config import settings
from app.core.exceptions import NonRetriableError
from app.core.logging import log


class RetryPolicy:
    def __init__(
        self,
        retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.retries = settings.workflow.workflow_retries if retries is None else retries
        self.backoff_seconds = settings.workflow.retry_backoff_seconds if backoff_seconds is None else backoff_seconds
        self._sleep = sleep

    def get_retry_delay(self, retry: int) -> float:
        """Delay before retry number `retry` (1-indexed): 2s, 4s, 6s..."""
        return self.backoff_seconds * retry

    async def run_with_retries(
        self,
        fn: Callable[[], Awaitable[Any]],
        label: str = "workflow",
        run_id: Optional[str] = None,
    ) -> Any:
        """
        Run fn, re-running it up to `retries` more times on failure.

        Returns fn's result; re-raises the last error once retries are spent.
        """
        for attempt in range(self.retries + 1):  # +1 for initial attempt
            if attempt > 0:
                log("RETRY", f"🔄 Retry {attempt}/{self.retries} for {label}", project_id=run_id)
            try:
                result = await fn()
            except NonRetriableError as e:
                log("RETRY", f"🔒 {label} failed permanently: {e}", project_id=run_id)
                raise
            except Exception as e:
                if attempt >= self.retries:
                    log("RETRY", f"🔒 Max retries reached for {label}: {e}", project_id=run_id)
                    raise
                delay = self.get_retry_delay(attempt + 1)
                log("RETRY", f"⏳ {label} failed ({e}), waiting {delay}s before retry...", project_id=run_id)
                await self._sleep(delay)
                continue

            if attempt > 0:
                log("RETRY", f"✅ Retry succeeded for {label} on attempt {attempt + 1}", project_id=run_id)
            return result


async def run_with_retries(
    fn: Callable[[], Awaitable[Any]],
    retries: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
    label: str = "workflow",
) -> Any:
    return await RetryPolicy(retries, backoff_seconds).run_with_retries(fn, label=label)
