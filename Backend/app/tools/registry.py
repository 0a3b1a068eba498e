# app/tools/registry.py
"""
Tool registry and dispatcher for the coding agent.

Each tool is bound to one sandbox handle. Tool failures are returned to the
model as text so it can recover; they never abort the agent run.
"""

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core.logging import log
from app.sandbox.environment import SandboxHandle

from .specs import SANDBOX_TOOL_SPECS

TERMINAL_TIMEOUT_SECONDS = 60
LIST_TIMEOUT_SECONDS = 30

ToolFn = Callable[[Dict[str, Any]], Awaitable[str]]


class SandboxToolbox:
    """The fixed agent tool set, executing against one sandbox."""

    def __init__(self, handle: SandboxHandle, session_id: Optional[str] = None) -> None:
        self.handle = handle
        self.session_id = session_id
        self._tools: Dict[str, ToolFn] = {
            "terminal": self.terminal,
            "createOrUpdateFiles": self.create_or_update_files,
            "readFile": self.read_file,
            "listFiles": self.list_files,
            "executeCode": self.execute_code,
        }

    def declarations(self) -> List[Dict[str, Any]]:
        return [spec.to_function_declaration() for spec in SANDBOX_TOOL_SPECS]

    async def run_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> str:
        """Run a tool by name and return its textual result."""
        tool = self._tools.get(name)
        if tool is None:
            return f"Error: unknown tool '{name}'"

        log("TOOL", f"🔧 {name}", data=_preview_args(args), project_id=self.session_id)
        try:
            return await tool(args or {})
        except Exception as e:
            log("TOOL", f"⚠️ {name} failed: {e}", project_id=self.session_id)
            return f"Error: {e}"

    # =========================================================================
    # TOOLS
    # =========================================================================

    async def terminal(self, args: Dict[str, Any]) -> str:
        stdout: List[str] = []
        stderr: List[str] = []
        await self.handle.run_command(
            args["command"],
            timeout=TERMINAL_TIMEOUT_SECONDS,
            on_stdout=stdout.append,
            on_stderr=stderr.append,
        )
        output = "".join(stdout)
        err = "".join(stderr)
        if err:
            output += f"\nSTDERR: {err}"
        return output

    async def create_or_update_files(self, args: Dict[str, Any]) -> str:
        files = args.get("files") or []
        for f in files:
            await self.handle.write_file(f["path"], f["content"])
        return f"Wrote {len(files)} file(s)"

    async def read_file(self, args: Dict[str, Any]) -> str:
        return await self.handle.read_file(args["path"])

    async def list_files(self, args: Dict[str, Any]) -> str:
        path = args["path"]
        stdout: List[str] = []
        await self.handle.run_command(
            f"find {path} -type f 2>/dev/null || ls -la {path}",
            timeout=LIST_TIMEOUT_SECONDS,
            on_stdout=stdout.append,
        )
        return "".join(stdout)

    async def execute_code(self, args: Dict[str, Any]) -> str:
        execution = await self.handle.run_code(args["code"])

        error = getattr(execution, "error", None)
        if error:
            return f"Error: {error.name}: {error.value}\n{error.traceback}"

        logs = getattr(execution, "logs", None)
        return json.dumps({
            "stdout": list(getattr(logs, "stdout", []) or []),
            "stderr": list(getattr(logs, "stderr", []) or []),
            "results": [_result_text(r) for r in getattr(execution, "results", []) or []],
        })


def _result_text(result: Any) -> str:
    # Images and other binary payloads never reach the model context
    return getattr(result, "text", None) or getattr(result, "html", None) or "[binary output]"


def _preview_args(args: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Trim bulky arguments (file contents) for debug logging."""
    if not args:
        return {}
    preview = dict(args)
    if "files" in preview:
        preview["files"] = [f.get("path") for f in preview["files"] or []]
    if "code" in preview:
        preview["code"] = str(preview["code"])[:80]
    return preview
