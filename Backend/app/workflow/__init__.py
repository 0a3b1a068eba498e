# app/workflow/__init__.py
"""
Workflow module - durable generation runs.

Note: Imports are done lazily to avoid circular dependencies with app.sandbox.
"""

def __getattr__(name):
    """Lazy import to avoid circular dependencies."""
    if name in ("generate_frontend", "run_generation", "dispatch", "WorkflowDeps"):
        from . import engine
        return getattr(engine, name)
    elif name == "StepRunner":
        from .steps import StepRunner
        return StepRunner
    elif name == "RunStateManager":
        from .state import RunStateManager
        return RunStateManager

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "generate_frontend",
    "run_generation",
    "dispatch",
    "WorkflowDeps",
    "StepRunner",
    "RunStateManager",
]
