# app/core/exceptions.py
"""
Custom exceptions for the application.

Launch failures are never raised: they travel as AttemptResult values.
Everything below is an infrastructure failure left to the workflow
retry policy.
"""
from typing import Optional, Dict, Any


class StudioError(Exception):
    """Base exception for all studio errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class WorkflowError(StudioError):
    """Workflow execution error."""
    pass


class NonRetriableError(WorkflowError):
    """Failure that the coarse workflow retry policy must not repeat."""
    pass


class UnknownTemplateError(NonRetriableError):
    """Template id is not in the registry (strict mode only)."""
    def __init__(self, template_id: str):
        super().__init__(
            f"unknown template: {template_id}",
            {"template_id": template_id}
        )
        self.template_id = template_id


class StepError(WorkflowError):
    """Misuse of the durable step runner (e.g. duplicate step id)."""
    def __init__(self, step_id: str, message: str):
        super().__init__(
            f"Step '{step_id}': {message}",
            {"step_id": step_id}
        )
        self.step_id = step_id


class LLMError(StudioError):
    """LLM provider error."""
    def __init__(self, provider: str, message: str):
        super().__init__(
            f"LLM error ({provider}): {message}",
            {"provider": provider}
        )
        self.provider = provider


class RateLimitError(LLMError):
    """Provider kept answering 429."""
    def __init__(self, provider: str, detail: str = ""):
        super().__init__(provider, f"Rate limited: {detail}" if detail else "Rate limited")


class SandboxError(StudioError):
    """Remote execution environment error."""
    def __init__(self, sandbox_id: str, message: str):
        super().__init__(
            f"Sandbox error for {sandbox_id}: {message}",
            {"sandbox_id": sandbox_id}
        )
        self.sandbox_id = sandbox_id
