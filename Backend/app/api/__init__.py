# app/api/__init__.py
"""
API module - All route handlers.
"""
from . import health, generate, sandbox

__all__ = [
    "health",
    "generate",
    "sandbox",
]
