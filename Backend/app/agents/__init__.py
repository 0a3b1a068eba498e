# app/agents/__init__.py
from .coding_agent import CodingAgent
from .invoker import AgentInvoker, AgentFactory, default_agent_factory

__all__ = ["CodingAgent", "AgentInvoker", "AgentFactory", "default_agent_factory"]
