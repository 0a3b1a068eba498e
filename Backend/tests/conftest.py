# tests/conftest.py
"""
Shared pytest fixtures for the Preview Studio tests.

Provides:
- FakeSandbox / FakeEnvironmentFactory standing in for E2B
- ScriptedAgent standing in for the Gemini coding agent
- A controllable clock for TTL tests
- Wired WorkflowDeps and an ASGI test client
"""
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

# Ensure app/ and tests/ are importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.agents.invoker import AgentInvoker
from app.sandbox.launcher import ServerLauncher
from app.sandbox.preview_manager import PreviewManager
from app.sandbox.session_store import SessionStore
from app.workflow.engine import WorkflowDeps


# ═══════════════════════════════════════════════════════
# FAKE SANDBOX
# ═══════════════════════════════════════════════════════

@dataclass
class CommandScript:
    """Scripted outcome of one run_command call."""
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    raises: Optional[Exception] = None


class FakeSandbox:
    """In-memory SandboxHandle. Scripts are matched by command substring."""

    def __init__(self, sandbox_id: str):
        self._id = sandbox_id
        self.files: Dict[str, str] = {}
        self.commands: List[str] = []
        self.scripts: Dict[str, List[CommandScript]] = {}
        self.code_results: List[Any] = []
        self.killed = False
        self.kill_error: Optional[Exception] = None

    @property
    def sandbox_id(self) -> str:
        return self._id

    def get_host(self, port: int) -> str:
        return f"{port}-{self._id}.e2b.test"

    def script(self, needle: str, *outcomes: CommandScript) -> "FakeSandbox":
        self.scripts.setdefault(needle, []).extend(outcomes)
        return self

    @property
    def launch_commands(self) -> List[str]:
        return [c for c in self.commands if not c.startswith("fuser")]

    async def run_command(self, command, timeout, on_stdout=None, on_stderr=None) -> int:
        self.commands.append(command)

        outcome = CommandScript()
        for needle, queue in self.scripts.items():
            if needle in command and queue:
                outcome = queue.pop(0)
                break

        # Stream before failing, like a process that printed and then died
        if outcome.stdout and on_stdout:
            on_stdout(outcome.stdout)
        if outcome.stderr and on_stderr:
            on_stderr(outcome.stderr)
        if outcome.raises is not None:
            raise outcome.raises
        return outcome.exit_code

    async def write_file(self, path: str, content: str) -> None:
        self.files[path] = content

    async def read_file(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def run_code(self, code: str) -> Any:
        if self.code_results:
            return self.code_results.pop(0)
        return SimpleNamespace(
            error=None,
            logs=SimpleNamespace(stdout=[], stderr=[]),
            results=[],
        )

    async def kill(self) -> None:
        self.killed = True
        if self.kill_error is not None:
            raise self.kill_error


class FakeEnvironmentFactory:
    """Creates FakeSandboxes; can be told to fail the next N creations."""

    def __init__(self):
        self.created: List[FakeSandbox] = []
        self.create_calls: List[Dict[str, Any]] = []
        self.fail_next = 0
        self.on_create = None  # callable(FakeSandbox) to script new sandboxes

    async def create(self, template_id: str, metadata: Dict[str, str], timeout: int) -> FakeSandbox:
        self.create_calls.append({"template_id": template_id, "metadata": dict(metadata), "timeout": timeout})
        if self.fail_next > 0:
            self.fail_next -= 1
            raise ConnectionError("sandbox provisioning failed")

        sandbox = FakeSandbox(f"sbx-{len(self.created) + 1}")
        if self.on_create:
            self.on_create(sandbox)
        self.created.append(sandbox)
        return sandbox

    async def connect(self, sandbox_id: str) -> FakeSandbox:
        for sandbox in self.created:
            if sandbox.sandbox_id == sandbox_id:
                return sandbox
        raise LookupError(sandbox_id)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ═══════════════════════════════════════════════════════
# SCRIPTED AGENT
# ═══════════════════════════════════════════════════════

@dataclass
class AgentCall:
    sandbox_id: str
    system_prompt: str
    prompt: str


class ScriptedAgent:
    """
    Agent factory for AgentInvoker. Records every run; `failures` holds
    exceptions raised by upcoming runs (None = succeed).
    """

    def __init__(self):
        self.calls: List[AgentCall] = []
        self.failures: List[Optional[Exception]] = []
        self.on_run = None  # callable(handle, prompt) for side effects

    def __call__(self, handle, system_prompt: str, session_id: Optional[str] = None):
        agent = self

        class _Run:
            async def run(self, user_prompt: str) -> str:
                agent.calls.append(AgentCall(handle.sandbox_id, system_prompt, user_prompt))
                if agent.on_run:
                    agent.on_run(handle, user_prompt)
                if agent.failures:
                    error = agent.failures.pop(0)
                    if error is not None:
                        raise error
                return "done"

        return _Run()

    @property
    def prompts(self) -> List[str]:
        return [c.prompt for c in self.calls]


class RecordingNotifier:
    def __init__(self):
        self.messages: List[Dict[str, Any]] = []

    async def __call__(self, session_id: str, message: Dict[str, Any]) -> None:
        self.messages.append(message)

    def statuses(self, step: str) -> List[str]:
        return [m["status"] for m in self.messages if m["step"] == step]


# ═══════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def factory():
    return FakeEnvironmentFactory()


@pytest.fixture
def store(factory, clock):
    return SessionStore(factory=factory, ttl_seconds=600, clock=clock)


@pytest.fixture
def agent():
    return ScriptedAgent()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def deps(store, agent, notifier):
    return WorkflowDeps(
        store=store,
        invoker=AgentInvoker(agent_factory=agent),
        launcher=ServerLauncher(timeout_seconds=30, max_attempts=3),
        previews=PreviewManager(),
        notify=notifier,
        max_self_heal_attempts=3,
        strict_templates=False,
    )


@pytest.fixture
def session_id():
    return "session-abc123"


@pytest.fixture
async def async_client(store):
    """ASGI client against the real app, with the fake session store."""
    import httpx
    from app import sandbox
    from app.main import app
    from app.workflow.state import RunStateManager

    sandbox.set_session_store(store)
    RunStateManager.clear()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    sandbox.set_session_store(None)
    RunStateManager.clear()
