"""
Sandbox package - E2B environments, session caching, dev server launches
"""

from typing import Optional

from .templates import TemplateConfig, TEMPLATES, get_template, is_known_template
from .environment import SandboxHandle, EnvironmentFactory, E2BEnvironment, E2BEnvironmentFactory
from .session_store import SessionStore, SandboxSession
from .classifier import FailureClassifier, HeuristicClassifier, Classification
from .launcher import ServerLauncher
from .preview_manager import PreviewManager

# Lazy initialization - only create when first accessed
_store_instance: Optional[SessionStore] = None
_preview_instance: Optional[PreviewManager] = None


def get_session_store() -> SessionStore:
    """Get the process-wide session store (lazy initialization)."""
    global _store_instance
    if _store_instance is None:
        _store_instance = SessionStore()
    return _store_instance


def set_session_store(store: Optional[SessionStore]) -> None:
    """Swap the process-wide store (tests, alternative factories)."""
    global _store_instance
    _store_instance = store


def get_preview_manager() -> PreviewManager:
    global _preview_instance
    if _preview_instance is None:
        _preview_instance = PreviewManager()
    return _preview_instance


__all__ = [
    "TemplateConfig",
    "TEMPLATES",
    "get_template",
    "is_known_template",
    "SandboxHandle",
    "EnvironmentFactory",
    "E2BEnvironment",
    "E2BEnvironmentFactory",
    "SessionStore",
    "SandboxSession",
    "FailureClassifier",
    "HeuristicClassifier",
    "Classification",
    "ServerLauncher",
    "PreviewManager",
    "get_session_store",
    "set_session_store",
    "get_preview_manager",
]
