# app/agents/invoker.py
"""
Agent Invoker - the workflow's only doorway to code generation.

The agent is a black box: it gets a prompt and a sandbox, mutates the
sandbox's filesystem, and either returns or raises.
"""
from typing import Callable, Optional, Protocol

from app.core.logging import log
from app.llm.prompts import to_prompt
from app.sandbox.environment import SandboxHandle
from app.sandbox.templates import TemplateConfig

from .coding_agent import CodingAgent


class Agent(Protocol):
    async def run(self, user_prompt: str) -> str: ...


# (handle, system_prompt, session_id) -> agent
AgentFactory = Callable[[SandboxHandle, str, Optional[str]], Agent]


def default_agent_factory(handle: SandboxHandle, system_prompt: str, session_id: Optional[str] = None) -> Agent:
    return CodingAgent(handle, system_prompt, session_id=session_id)


class AgentInvoker:
    def __init__(self, agent_factory: Optional[AgentFactory] = None) -> None:
        self.agent_factory = agent_factory or default_agent_factory

    async def invoke(
        self,
        handle: SandboxHandle,
        prompt: str,
        template_id: str,
        template: Optional[TemplateConfig] = None,
        session_id: Optional[str] = None,
    ) -> None:
        """Run the agent once against handle. Exceptions propagate."""
        agent = self.agent_factory(handle, to_prompt(template_id, template), session_id)
        log("AGENT", f"🤖 Invoking agent on sandbox {handle.sandbox_id}", project_id=session_id)
        await agent.run(prompt)
