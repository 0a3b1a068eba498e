# app/llm/__init__.py
"""
LLM module - provider calls and agent prompts.
"""
from .providers import gemini

__all__ = ["gemini"]
