"""
Sandbox tool set and the coding agent's function-calling loop.
"""
import json
from types import SimpleNamespace

import pytest

from app.agents.coding_agent import CodingAgent
from app.agents.invoker import AgentInvoker
from app.tools import SANDBOX_TOOL_SPECS, SandboxToolbox

from conftest import CommandScript, FakeSandbox


@pytest.fixture
def sandbox():
    return FakeSandbox("sbx-1")


@pytest.fixture
def toolbox(sandbox):
    return SandboxToolbox(sandbox)


# ═══════════════════════════════════════════════════════
# TOOLS
# ═══════════════════════════════════════════════════════

def test_declarations_cover_fixed_tool_set(toolbox):
    names = [d["name"] for d in toolbox.declarations()]
    assert names == ["terminal", "createOrUpdateFiles", "readFile", "listFiles", "executeCode"]
    assert len(SANDBOX_TOOL_SPECS) == 5
    assert toolbox.declarations()[0]["parameters"]["required"] == ["command"]


@pytest.mark.asyncio
async def test_terminal_appends_stderr(toolbox, sandbox):
    sandbox.script("npm install", CommandScript(stdout="added 3 packages", stderr="npm WARN deprecated"))

    output = await toolbox.run_tool("terminal", {"command": "npm install zod"})

    assert output == "added 3 packages\nSTDERR: npm WARN deprecated"


@pytest.mark.asyncio
async def test_terminal_without_stderr(toolbox, sandbox):
    sandbox.script("echo", CommandScript(stdout="hi\n"))

    assert await toolbox.run_tool("terminal", {"command": "echo hi"}) == "hi\n"


@pytest.mark.asyncio
async def test_create_or_update_files(toolbox, sandbox):
    output = await toolbox.run_tool("createOrUpdateFiles", {"files": [
        {"path": "pages/index.tsx", "content": "export default () => null"},
        {"path": "lib/util.ts", "content": "export {}"},
    ]})

    assert output == "Wrote 2 file(s)"
    assert sandbox.files["pages/index.tsx"] == "export default () => null"


@pytest.mark.asyncio
async def test_read_file_and_missing_file_error(toolbox, sandbox):
    sandbox.files["app.py"] = "print('hi')"

    assert await toolbox.run_tool("readFile", {"path": "app.py"}) == "print('hi')"
    assert (await toolbox.run_tool("readFile", {"path": "nope.py"})).startswith("Error:")


@pytest.mark.asyncio
async def test_list_files_uses_find_with_ls_fallback(toolbox, sandbox):
    sandbox.script("find", CommandScript(stdout="/home/user/pages/index.tsx\n"))

    output = await toolbox.run_tool("listFiles", {"path": "/home/user"})

    assert output == "/home/user/pages/index.tsx\n"
    assert sandbox.commands[-1] == "find /home/user -type f 2>/dev/null || ls -la /home/user"


@pytest.mark.asyncio
async def test_execute_code_results(toolbox, sandbox):
    sandbox.code_results.append(SimpleNamespace(
        error=None,
        logs=SimpleNamespace(stdout=["42\n"], stderr=[]),
        results=[SimpleNamespace(text="<Figure>")],
    ))

    output = json.loads(await toolbox.run_tool("executeCode", {"code": "print(42)"}))

    assert output == {"stdout": ["42\n"], "stderr": [], "results": ["<Figure>"]}


@pytest.mark.asyncio
async def test_execute_code_error(toolbox, sandbox):
    sandbox.code_results.append(SimpleNamespace(
        error=SimpleNamespace(name="NameError", value="name 'x' is not defined", traceback="Traceback ..."),
        logs=None,
        results=[],
    ))

    output = await toolbox.run_tool("executeCode", {"code": "x"})

    assert output == "Error: NameError: name 'x' is not defined\nTraceback ..."


@pytest.mark.asyncio
async def test_execute_code_non_text_results(toolbox, sandbox):
    sandbox.code_results.append(SimpleNamespace(
        error=None,
        logs=SimpleNamespace(stdout=[], stderr=[]),
        results=[
            SimpleNamespace(text=None, html="<table></table>", png="iVBORw0KGgo..."),
            SimpleNamespace(text=None, html=None, png="iVBORw0KGgo..."),
        ],
    ))

    output = json.loads(await toolbox.run_tool("executeCode", {"code": "df.plot()"}))

    assert output["results"] == ["<table></table>", "[binary output]"]


@pytest.mark.asyncio
async def test_unknown_tool_and_tool_exceptions_become_text(toolbox, sandbox):
    sandbox.script("boom", CommandScript(raises=RuntimeError("sandbox unreachable")))

    assert await toolbox.run_tool("deploy", {}) == "Error: unknown tool 'deploy'"
    assert await toolbox.run_tool("terminal", {"command": "boom"}) == "Error: sandbox unreachable"


# ═══════════════════════════════════════════════════════
# AGENT LOOP
# ═══════════════════════════════════════════════════════

class ScriptedLLM:
    """Returns the queued model turns in order and records each request."""

    def __init__(self, *turns):
        self.turns = list(turns)
        self.requests = []

    async def __call__(self, contents, system_prompt="", tools=None, model=None, **kwargs):
        self.requests.append({
            "contents": list(contents),
            "system_prompt": system_prompt,
            "tools": tools,
            "model": model,
        })
        return {"content": self.turns.pop(0), "usage": {}}


def call(name, **args):
    return {"role": "model", "parts": [{"functionCall": {"name": name, "args": args}}]}


def text(value):
    return {"role": "model", "parts": [{"text": value}]}


@pytest.mark.asyncio
async def test_agent_executes_tool_calls_until_text(sandbox):
    llm = ScriptedLLM(
        call("createOrUpdateFiles", files=[{"path": "pages/index.tsx", "content": "page"}]),
        text("Built the todo page."),
    )
    agent = CodingAgent(sandbox, "system", model="gemini-test", max_iter=15, llm=llm)

    final = await agent.run("build a todo app")

    assert final == "Built the todo page."
    assert sandbox.files["pages/index.tsx"] == "page"
    assert len(llm.requests) == 2
    assert llm.requests[0]["system_prompt"] == "system"
    assert llm.requests[0]["model"] == "gemini-test"

    tool_turn = llm.requests[1]["contents"][-1]
    assert tool_turn["role"] == "user"
    response = tool_turn["parts"][0]["functionResponse"]
    assert response == {"name": "createOrUpdateFiles", "response": {"result": "Wrote 1 file(s)"}}


@pytest.mark.asyncio
async def test_agent_stops_at_iteration_budget(sandbox):
    llm = ScriptedLLM(*[call("listFiles", path="/home/user") for _ in range(3)])
    agent = CodingAgent(sandbox, "system", max_iter=3, llm=llm)

    await agent.run("loop forever")

    assert len(llm.requests) == 3


@pytest.mark.asyncio
async def test_llm_failure_propagates(sandbox):
    async def failing_llm(*args, **kwargs):
        raise ConnectionError("gemini unreachable")

    agent = CodingAgent(sandbox, "system", max_iter=3, llm=failing_llm)

    with pytest.raises(ConnectionError):
        await agent.run("anything")


@pytest.mark.asyncio
async def test_invoker_builds_agent_with_template_prompt(sandbox, agent):
    from app.sandbox.templates import get_template

    await AgentInvoker(agent_factory=agent).invoke(
        sandbox, "make it blue", "vue-developer", get_template("vue-developer")
    )

    assert agent.calls[0].prompt == "make it blue"
    assert agent.calls[0].sandbox_id == "sbx-1"
    assert "app.vue" in agent.calls[0].system_prompt


@pytest.mark.asyncio
async def test_invoker_propagates_agent_errors(sandbox, agent):
    agent.failures = [RuntimeError("quota exceeded")]

    with pytest.raises(RuntimeError, match="quota exceeded"):
        await AgentInvoker(agent_factory=agent).invoke(sandbox, "x", "nextjs-developer")
