import sys
import os
from datetime import datetime
from typing import Any, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# LOG FILTERING
# ═══════════════════════════════════════════════════════════════════════════════
# Only these scopes are shown at INFO level
# Everything else is gated behind STUDIO_DEBUG

INFO_SCOPES = {
    "WORKFLOW",     # Run lifecycle
    "SESSION",      # Sandbox reuse / creation / disposal
    "AGENT",        # Agent boundary
    "LAUNCH",       # Dev server attempts
    "HEAL",         # Self-heal transitions
    "RETRY",        # Coarse workflow retries
    "API",          # Trigger endpoint
}

# DEBUG-only scopes (hidden by default)
DEBUG_SCOPES = {
    "STEP",
    "TOOL",
    "GEMINI",
    "CHECKPOINT",
    "PREVIEW",
    "MONITORING",
    "WS",
}


def _debug_enabled() -> bool:
    return os.getenv("STUDIO_DEBUG", "false").lower() == "true"


def log(scope: str, message: str, data: Any = None, project_id: Optional[str] = None) -> None:
    """
    Unified logging function for the studio.

    Only INFO_SCOPES are shown by default.
    Set STUDIO_DEBUG=true to see all scopes.
    """
    if not _debug_enabled() and scope not in INFO_SCOPES:
        return

    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = f"[{timestamp}] [{scope}]"

    if project_id:
        prefix += f" [{project_id[:8]}]"

    print(f"{prefix} {message}")

    if data:
        print(f"  Data: {data}")

    sys.stdout.flush()


def log_section(scope: str, title: str, project_id: Optional[str] = None) -> None:
    """
    Log a section header with visual separator.
    """
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\n{'='*60}")
    if project_id:
        print(f"[{timestamp}] [{scope}] [{project_id[:8]}] {title}")
    else:
        print(f"[{timestamp}] [{scope}] {title}")
    print(f"{'='*60}")
    sys.stdout.flush()


def log_attempt(scope: str, attempt: int, max_attempts: int, success: bool,
                error: str = "", project_id: Optional[str] = None, max_lines: int = 10) -> None:
    """
    Log a launch attempt verdict, truncating long error output.
    """
    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = f"[{timestamp}] [{scope}]"
    if project_id:
        prefix += f" [{project_id[:8]}]"

    if success:
        print(f"{prefix} ✅ Attempt {attempt}/{max_attempts} succeeded")
    else:
        print(f"{prefix} ⚠️ Attempt {attempt}/{max_attempts} failed")
        lines = str(error).split('\n')
        for line in lines[:max_lines]:
            print(f"  {line}")
        if len(lines) > max_lines:
            print(f"  ... ({len(lines) - max_lines} more lines)")
    sys.stdout.flush()
