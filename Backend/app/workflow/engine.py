# app/workflow/engine.py
"""
Workflow Entry Points

generate_frontend: the durable workflow function (one pass).
run_generation:    drives it under the coarse retry policy and records the run.
dispatch:          fires run_generation in the background (API ingress).

Step sequence per run:
    get-sandbox → agent-generate-code → [start-server-attempt-N / self-heal-attempt-N]*

Every step body re-acquires the session's sandbox from the store, so a
replayed or retried step always works against the live environment.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from app.agents.invoker import AgentInvoker
from app.core.config import settings
from app.core.exceptions import UnknownTemplateError
from app.core.logging import log, log_section
from app.lib.monitoring import record_workflow_run
from app.models.workflow import AttemptResult, GenerationRequest, WorkflowResult
from app.orchestration.retry_policy import RetryPolicy
from app.orchestration.self_heal import SelfHealController
from app.sandbox import get_preview_manager, get_session_store
from app.sandbox.launcher import ServerLauncher
from app.sandbox.preview_manager import PreviewManager
from app.sandbox.session_store import SessionStore
from app.sandbox.templates import DEFAULT_START_COMMAND, get_template

from .state import RunStateManager
from .steps import StepRunner

# (session_id, message) -> None
Notifier = Callable[[str, Dict[str, Any]], Awaitable[None]]


@dataclass
class WorkflowDeps:
    """Collaborators of one run. Tests swap in fakes here."""
    store: SessionStore
    invoker: AgentInvoker = field(default_factory=AgentInvoker)
    launcher: ServerLauncher = field(default_factory=ServerLauncher)
    previews: Optional[PreviewManager] = None
    notify: Optional[Notifier] = None
    max_self_heal_attempts: int = field(default_factory=lambda: settings.workflow.max_self_heal_attempts)
    strict_templates: bool = field(default_factory=lambda: settings.workflow.strict_templates)


def default_deps() -> WorkflowDeps:
    from app.lib.websocket import manager

    return WorkflowDeps(
        store=get_session_store(),
        previews=get_preview_manager(),
        notify=manager.send_to_session,
    )


async def _emit(deps: WorkflowDeps, session_id: str, step: str, status: str,
                data: Optional[Dict[str, Any]] = None) -> None:
    """Push a progress event; a broken notifier never fails the run."""
    if deps.notify is None:
        return
    from app.lib.websocket import workflow_update

    try:
        await deps.notify(session_id, workflow_update(session_id, step, status, data))
    except Exception as e:
        log("WS", f"Failed to broadcast {step}/{status}: {e}", project_id=session_id)


# ═══════════════════════════════════════════════════════════════════════════════
# WORKFLOW FUNCTION
# ═══════════════════════════════════════════════════════════════════════════════

async def generate_frontend(request: GenerationRequest, step: StepRunner, deps: WorkflowDeps) -> WorkflowResult:
    """
    One pass of the generation workflow.

    Provisioning and agent failures propagate (the retry policy handles
    them). Launch failures are values and end in Exhausted at worst.
    """
    session_id = request.session_id
    template_id = request.template_id
    template = get_template(template_id)

    if template is None:
        if deps.strict_templates:
            raise UnknownTemplateError(template_id)
        log("WORKFLOW", f"⚠️ Unknown template '{template_id}', treating as interactive on port {request.port}",
            project_id=session_id)

    port = request.port
    interactive = template.interactive if template else True
    start_command = template.start_command if template else DEFAULT_START_COMMAND

    async def _acquire():
        return await deps.store.acquire(session_id, template_id)

    # Step 1: sandbox
    async def _get_sandbox():
        handle = await _acquire()
        return {"id": handle.sandbox_id, "host": handle.get_host(port)}

    await _emit(deps, session_id, "get-sandbox", "started")
    sandbox_info = await step.run("get-sandbox", _get_sandbox)
    await _emit(deps, session_id, "get-sandbox", "completed", sandbox_info)

    # Step 2: initial generation
    async def _generate():
        handle = await _acquire()
        await deps.invoker.invoke(handle, request.prompt, template_id, template, session_id=session_id)
        return None

    await _emit(deps, session_id, "agent-generate-code", "started")
    await step.run("agent-generate-code", _generate)
    await _emit(deps, session_id, "agent-generate-code", "completed")

    # Step 3: batch templates already executed their code through the agent
    if not interactive:
        log("WORKFLOW", "✓ Batch template, no dev server to start", project_id=session_id)
        return WorkflowResult(sandbox_id=sandbox_info["id"], template_id=template_id, success=True)

    async def _launch(attempt: int) -> AttemptResult:
        handle = await _acquire()
        return await deps.launcher.launch(handle, port, attempt, start_command=start_command, session_id=session_id)

    async def _heal(prompt: str) -> None:
        await _emit(deps, session_id, "self-heal", "started")
        handle = await _acquire()
        await deps.invoker.invoke(handle, prompt, template_id, template, session_id=session_id)

    async def _on_attempt(result: AttemptResult) -> None:
        if deps.previews is not None:
            deps.previews.record_preview(session_id, result.preview_url, result.success)
        await _emit(deps, session_id, f"start-server-attempt-{result.attempt}",
                    "success" if result.success else "failed",
                    {"previewUrl": result.preview_url, "error": result.error})

    controller = SelfHealController(
        step,
        launch_fn=_launch,
        heal_fn=_heal,
        max_attempts=deps.max_self_heal_attempts,
        on_attempt=_on_attempt,
        session_id=session_id,
    )
    outcome = await controller.run()

    return WorkflowResult(
        sandbox_id=sandbox_info["id"],
        template_id=template_id,
        success=outcome.result.success,
        preview_url=outcome.result.preview_url,
        attempts=outcome.attempts,
        last_error=None if outcome.result.success else outcome.result.error,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# RUNNER
# ═══════════════════════════════════════════════════════════════════════════════

async def run_generation(
    request: GenerationRequest,
    deps: Optional[WorkflowDeps] = None,
    retry_policy: Optional[RetryPolicy] = None,
    step: Optional[StepRunner] = None,
) -> WorkflowResult:
    """
    Run the workflow to a terminal result, retrying whole passes on
    unhandled failures. Completed steps are replayed across passes.
    The step checkpoint is dropped once the run reaches a terminal result,
    so resubmitting the same request after that starts from scratch.
    """
    deps = deps or default_deps()
    retry_policy = retry_policy or RetryPolicy()
    session_id = request.session_id
    step = step or StepRunner(
        run_id=request.run_id,
        checkpoint_dir=settings.workflow.checkpoint_dir,
    )

    RunStateManager.mark_running(session_id)
    log_section("WORKFLOW", f"🚀 Generation started (template={request.template_id}, port={request.port})",
                project_id=session_id)

    async def _pass() -> WorkflowResult:
        step.begin_pass()
        return await generate_frontend(request, step, deps)

    try:
        result = await retry_policy.run_with_retries(_pass, label="generate-frontend", run_id=session_id)
    except Exception as e:
        record_workflow_run("failed")
        step.clear()
        await RunStateManager.fail(session_id, str(e))
        await _emit(deps, session_id, "workflow", "failed", {"error": str(e)})
        log_section("WORKFLOW", f"❌ Generation failed: {e}", project_id=session_id)
        raise

    record_workflow_run("success" if result.success else "exhausted")
    step.clear()
    await RunStateManager.complete(session_id, result)
    await _emit(deps, session_id, "workflow", "completed", result.to_dict())
    log_section("WORKFLOW", f"{'✅' if result.success else '⚠️'} Generation finished: {result.to_dict()}",
                project_id=session_id)
    return result


async def _run_in_background(request: GenerationRequest, deps: Optional[WorkflowDeps]) -> None:
    try:
        await run_generation(request, deps)
    except Exception as e:
        # Already recorded on the run; nothing awaits this task
        log("WORKFLOW", f"Background run ended with error: {e}", project_id=request.session_id)


def dispatch(request: GenerationRequest, deps: Optional[WorkflowDeps] = None) -> asyncio.Task:
    """Start run_generation without waiting for it."""
    task = asyncio.create_task(_run_in_background(request, deps))
    RunStateManager.track(task)
    return task
