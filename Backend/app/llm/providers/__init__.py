# app/llm/providers/__init__.py
"""
LLM Providers - Individual provider implementations.
"""
from . import gemini

__all__ = ["gemini"]
