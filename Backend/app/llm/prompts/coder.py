# app/llm/prompts/coder.py
"""
Coding agent prompts - system prompt per template, corrective prompt for healing.
"""
from typing import Optional

from app.sandbox.templates import TemplateConfig


CODER_PROMPT = """You are a skilled software engineer working inside a live sandbox.
You do not make mistakes.

You act ONLY through your tools:
* terminal - run shell commands (install extra dependencies here)
* createOrUpdateFiles - write complete files, never partial snippets
* readFile / listFiles - inspect the project before changing it
* executeCode - run Python code (data analysis templates only)

RULES:
* Do not touch dependency manifests such as package.json, package-lock.json or requirements.txt.
* Do not wrap file contents in backticks.
* Always break lines correctly.
* Do not start the dev server yourself; it is started for you after you finish.
* When the work is done, reply with a one-paragraph summary and no tool call.

TEMPLATE:
{template_block}
"""

UNKNOWN_TEMPLATE_BLOCK = "{template_id}: no template details available. Inspect the project with listFiles first."

HEAL_PROMPT = "The dev server failed with this error. Please analyze and fix the issue:\n\n{error}"


def template_to_prompt(template_id: str, template: Optional[TemplateConfig]) -> str:
    """One-line description of the template the agent is working in."""
    if template is None:
        return UNKNOWN_TEMPLATE_BLOCK.format(template_id=template_id)
    return (
        f'{template_id}: "{template.instructions}". '
        f"File: {template.file or 'none'}. "
        f"Dependencies installed: {', '.join(template.libs) or 'none'}. "
        f"Port: {template.default_port or 'none'}."
    )


def to_prompt(template_id: str, template: Optional[TemplateConfig]) -> str:
    """System prompt for the coding agent."""
    return CODER_PROMPT.format(template_block=template_to_prompt(template_id, template))


def heal_prompt(error: str) -> str:
    """Corrective prompt; embeds the launch error verbatim."""
    return HEAL_PROMPT.format(error=error)
