# app/orchestration/__init__.py
"""
Retry layers of a generation run.

- retry_policy.py: coarse, whole-workflow retries on infrastructure failures
- self_heal.py:    fine-grained launch → heal → relaunch loop (max 3 attempts)

Usage:
    from app.orchestration import SelfHealController

    outcome = await SelfHealController(step, launch_fn, heal_fn).run()
"""

from .retry_policy import RetryPolicy, run_with_retries
from .self_heal import SelfHealController, launch_step_id, heal_step_id

__all__ = [
    "RetryPolicy",
    "run_with_retries",
    "SelfHealController",
    "launch_step_id",
    "heal_step_id",
]
