from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ToolSpec:
    id: str
    description: str

    # JSON-schema-ish parameter map: name -> {"type": ..., "description": ...}
    parameters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)

    # Safety flags (informational, surfaced in the tool listing)
    writes_files: bool = False
    allows_shell: bool = False

    def to_function_declaration(self) -> Dict[str, Any]:
        """Gemini functionDeclarations entry."""
        return {
            "name": self.id,
            "description": self.description,
            "parameters": {
                "type": "OBJECT",
                "properties": self.parameters,
                "required": list(self.required),
            },
        }


TERMINAL = ToolSpec(
    id="terminal",
    description="Run a terminal command in the sandbox",
    parameters={"command": {"type": "STRING", "description": "Shell command to run"}},
    required=["command"],
    allows_shell=True,
)

CREATE_OR_UPDATE_FILES = ToolSpec(
    id="createOrUpdateFiles",
    description="Create or update files in the project",
    parameters={
        "files": {
            "type": "ARRAY",
            "description": "Files to write, each with full content",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "path": {"type": "STRING"},
                    "content": {"type": "STRING"},
                },
                "required": ["path", "content"],
            },
        }
    },
    required=["files"],
    writes_files=True,
)

READ_FILE = ToolSpec(
    id="readFile",
    description="Read a file's contents",
    parameters={"path": {"type": "STRING", "description": "Absolute or project-relative path"}},
    required=["path"],
)

LIST_FILES = ToolSpec(
    id="listFiles",
    description="List files in a directory",
    parameters={"path": {"type": "STRING", "description": "Directory to list"}},
    required=["path"],
    allows_shell=True,
)

EXECUTE_CODE = ToolSpec(
    id="executeCode",
    description="Execute Python code and return results (for code-interpreter template)",
    parameters={"code": {"type": "STRING", "description": "Python source to run as a notebook cell"}},
    required=["code"],
)

SANDBOX_TOOL_SPECS: List[ToolSpec] = [
    TERMINAL,
    CREATE_OR_UPDATE_FILES,
    READ_FILE,
    LIST_FILES,
    EXECUTE_CODE,
]
