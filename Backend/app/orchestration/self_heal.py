# app/orchestration/self_heal.py
"""
Self-Heal Controller

Launch the dev server, and while it fails, feed the error back to the
coding agent and try again, up to a hard attempt limit.

    Idle → Launching → Evaluating → Succeeded
                            ↓
                         Healing → Launching ...
                            ↓ (limit reached)
                        Exhausted

Every launch and every heal is its own durable step, so a replayed run
never re-launches or re-heals an attempt that already completed.
"""
from typing import Awaitable, Callable, List, Optional

from app.core.config import settings
from app.core.logging import log
from app.lib.monitoring import record_self_heal
from app.llm.prompts import heal_prompt
from app.models.workflow import AttemptResult, HealOutcome, HealState
from app.workflow.steps import StepRunner

LaunchFn = Callable[[int], Awaitable[AttemptResult]]
HealFn = Callable[[str], Awaitable[None]]
AttemptCallback = Callable[[AttemptResult], Awaitable[None]]


def launch_step_id(attempt: int) -> str:
    return f"start-server-attempt-{attempt}"


def heal_step_id(attempt: int) -> str:
    return f"self-heal-attempt-{attempt}"


class SelfHealController:
    def __init__(
        self,
        step: StepRunner,
        launch_fn: LaunchFn,
        heal_fn: HealFn,
        max_attempts: Optional[int] = None,
        on_attempt: Optional[AttemptCallback] = None,
        session_id: Optional[str] = None,
    ):
        self.step = step
        self.launch_fn = launch_fn
        self.heal_fn = heal_fn
        self.max_attempts = max(1, max_attempts or settings.workflow.max_self_heal_attempts)
        self.on_attempt = on_attempt
        self.session_id = session_id

        self.attempt = 0
        self.state = HealState.IDLE
        self.transitions: List[HealState] = [HealState.IDLE]

    def _enter(self, state: HealState) -> None:
        self.state = state
        self.transitions.append(state)

    async def run(self) -> HealOutcome:
        """
        Drive the loop to a terminal state.

        At most max_attempts launches and max_attempts - 1 heals. Launch
        failures never raise; agent failures during a heal propagate.
        """
        while True:
            self.attempt += 1
            attempt = self.attempt
            self._enter(HealState.LAUNCHING)

            async def _launch(n: int = attempt):
                return (await self.launch_fn(n)).to_dict()

            result = AttemptResult.from_dict(await self.step.run(launch_step_id(attempt), _launch))

            self._enter(HealState.EVALUATING)
            if self.on_attempt:
                await self.on_attempt(result)

            if result.success:
                self._enter(HealState.SUCCEEDED)
                log("HEAL", f"✅ Dev server up after {attempt} attempt(s)", project_id=self.session_id)
                return self._outcome(result)

            if attempt >= self.max_attempts:
                self._enter(HealState.EXHAUSTED)
                log("HEAL", f"❌ Self-heal exhausted after {attempt} attempt(s)", project_id=self.session_id)
                return self._outcome(result)

            self._enter(HealState.HEALING)
            log("HEAL", f"🩹 Healing after attempt {attempt}/{self.max_attempts}", project_id=self.session_id)

            async def _heal(error: str = result.error):
                record_self_heal()
                await self.heal_fn(heal_prompt(error))
                return None

            await self.step.run(heal_step_id(attempt), _heal)

    def _outcome(self, result: AttemptResult) -> HealOutcome:
        return HealOutcome(
            result=result,
            attempts=self.attempt,
            state=self.state,
            transitions=list(self.transitions),
        )
