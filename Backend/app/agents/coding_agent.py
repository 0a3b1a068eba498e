# app/agents/coding_agent.py
"""
Coding agent: a bounded Gemini function-calling loop over the sandbox tools.

The model sees the conversation, may call any of the sandbox tools, gets the
tool results back as functionResponse parts and eventually answers with
plain text. The loop stops there, or after max_iter model calls.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core.config import settings
from app.core.logging import log
from app.llm.providers import gemini
from app.sandbox.environment import SandboxHandle
from app.tools import SandboxToolbox

GenerateFn = Callable[..., Awaitable[Dict[str, Any]]]


class CodingAgent:
    name = "coder"

    def __init__(
        self,
        handle: SandboxHandle,
        system_prompt: str,
        model: Optional[str] = None,
        max_iter: Optional[int] = None,
        llm: Optional[GenerateFn] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.handle = handle
        self.system_prompt = system_prompt
        self.model = model or settings.llm.default_model
        self.max_iter = max_iter or settings.llm.agent_max_iter
        self.session_id = session_id
        self._llm = llm or gemini.generate
        self.toolbox = SandboxToolbox(handle, session_id=session_id)

    async def run(self, user_prompt: str) -> str:
        """
        Drive the model until it stops calling tools.

        Returns the model's final text (may be empty when the iteration
        budget runs out mid tool-use). LLM failures propagate.
        """
        contents: List[Dict[str, Any]] = [
            {"role": "user", "parts": [{"text": user_prompt}]}
        ]
        declarations = self.toolbox.declarations()
        final_text = ""

        for iteration in range(1, self.max_iter + 1):
            response = await self._llm(
                contents,
                system_prompt=self.system_prompt,
                tools=declarations,
                model=self.model,
            )
            content = response["content"]
            contents.append(content)

            parts = content.get("parts", [])
            calls = [p["functionCall"] for p in parts if "functionCall" in p]
            text = "".join(p.get("text", "") for p in parts if "text" in p)
            if text:
                final_text = text

            if not calls:
                log("AGENT", f"✓ Agent finished after {iteration} iteration(s)", project_id=self.session_id)
                return final_text

            responses = []
            for call in calls:
                name = call.get("name", "")
                result = await self.toolbox.run_tool(name, call.get("args") or {})
                responses.append({
                    "functionResponse": {
                        "name": name,
                        "response": {"result": result},
                    }
                })
            contents.append({"role": "user", "parts": responses})

        log("AGENT", f"⚠️ Iteration budget ({self.max_iter}) exhausted", project_id=self.session_id)
        return final_text
