# app/core/config.py
"""
Application configuration - single source of truth for all settings.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class LLMSettings:
    """LLM provider configuration for the coding agent."""
    gemini_api_key: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    default_model: str = field(default_factory=lambda: os.getenv("DEFAULT_LLM_MODEL", "gemini-2.5-flash"))
    temperature: float = 0.2
    max_tokens: int = 8192
    request_timeout: int = 120
    # Model round-trips per agent run (tool calls included)
    agent_max_iter: int = field(default_factory=lambda: int(os.getenv("AGENT_MAX_ITER", "15")))


@dataclass
class SandboxSettings:
    """Remote execution environment (E2B) configuration."""
    e2b_api_key: Optional[str] = field(default_factory=lambda: os.getenv("E2B_API_KEY"))
    # A cached session is reused only while younger than this.
    # Also passed to E2B as the sandbox lifetime.
    session_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("SANDBOX_TTL_SECONDS", "600")))
    launch_timeout_seconds: int = field(default_factory=lambda: int(os.getenv("LAUNCH_TIMEOUT_SECONDS", "30")))
    port_cleanup_timeout_seconds: int = 5


@dataclass
class WorkflowSettings:
    """Workflow execution configuration."""
    max_self_heal_attempts: int = field(default_factory=lambda: int(os.getenv("MAX_SELF_HEAL_ATTEMPTS", "3")))
    # Coarse whole-workflow retries on unhandled step failure
    workflow_retries: int = field(default_factory=lambda: int(os.getenv("WORKFLOW_RETRIES", "5")))
    retry_backoff_seconds: float = field(default_factory=lambda: float(os.getenv("WORKFLOW_RETRY_BACKOFF", "2")))
    default_template: str = field(default_factory=lambda: os.getenv("DEFAULT_TEMPLATE", "nextjs-developer"))
    default_port: int = 3000
    # Reject unknown template ids instead of falling back to default_port
    strict_templates: bool = field(default_factory=lambda: _env_bool("STRICT_TEMPLATES"))
    checkpoint_dir: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["CHECKPOINT_DIR"]) if os.getenv("CHECKPOINT_DIR") else None
    )


@dataclass
class Settings:
    """Main application settings."""
    llm: LLMSettings = field(default_factory=LLMSettings)
    sandbox: SandboxSettings = field(default_factory=SandboxSettings)
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
    port: int = field(default_factory=lambda: int(os.getenv("PORT", 8000)))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG"))
    cors_origins: List[str] = field(
        default_factory=lambda: os.getenv("CORS_ORIGINS", "*").split(",")
    )
    rate_limit: str = field(default_factory=lambda: os.getenv("RATE_LIMIT", "100/minute"))

    def ensure_directories(self):
        """Ensure required directories exist."""
        if self.workflow.checkpoint_dir:
            self.workflow.checkpoint_dir.mkdir(parents=True, exist_ok=True)


# Singleton instance
settings = Settings()
