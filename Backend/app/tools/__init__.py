# app/tools/__init__.py
"""
Tools Module - the coding agent's sandbox tool set.

- specs.py: tool declarations (name, parameters, safety flags)
- registry.py: SandboxToolbox, binds the tools to one sandbox and dispatches
"""

from .specs import ToolSpec, SANDBOX_TOOL_SPECS
from .registry import SandboxToolbox

__all__ = [
    "ToolSpec",
    "SANDBOX_TOOL_SPECS",
    "SandboxToolbox",
]
