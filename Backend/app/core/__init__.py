# app/core/__init__.py
"""
Core module - configuration, logging and shared exceptions.
"""
from .config import settings
from .exceptions import (
    StudioError,
    WorkflowError,
    NonRetriableError,
    UnknownTemplateError,
    StepError,
    LLMError,
    RateLimitError,
    SandboxError,
)

__all__ = [
    # Config
    "settings",
    # Exceptions
    "StudioError",
    "WorkflowError",
    "NonRetriableError",
    "UnknownTemplateError",
    "StepError",
    "LLMError",
    "RateLimitError",
    "SandboxError",
]
