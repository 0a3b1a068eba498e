# app/llm/prompts/__init__.py
"""
Agent prompts.
"""
from .coder import CODER_PROMPT, HEAL_PROMPT, to_prompt, heal_prompt, template_to_prompt

__all__ = [
    "CODER_PROMPT",
    "HEAL_PROMPT",
    "to_prompt",
    "heal_prompt",
    "template_to_prompt",
]
