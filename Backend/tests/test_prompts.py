import json

import pytest

from app.core.exceptions import LLMError
from app.llm.prompts import heal_prompt, template_to_prompt, to_prompt
from app.llm.providers import gemini
from app.sandbox.templates import TEMPLATES, get_template


def test_heal_prompt_embeds_error_verbatim():
    error = "error: Cannot find module 'zod'\n    at ./pages/index.tsx:3"

    prompt = heal_prompt(error)

    assert prompt == (
        "The dev server failed with this error. Please analyze and fix the issue:\n\n" + error
    )


def test_system_prompt_lists_tools_and_template():
    prompt = to_prompt("nextjs-developer", get_template("nextjs-developer"))

    for tool in ("terminal", "createOrUpdateFiles", "readFile", "listFiles", "executeCode"):
        assert tool in prompt
    assert "nextjs-developer" in prompt
    assert "Port: 3000" in prompt


def test_batch_template_prompt_has_no_port():
    block = template_to_prompt("code-interpreter-v1", get_template("code-interpreter-v1"))
    assert "Port: none" in block


def test_unknown_template_prompt():
    assert "no template details" in template_to_prompt("mystery", None)


def test_template_registry():
    assert TEMPLATES["code-interpreter-v1"].interactive is False
    assert all(t.interactive for tid, t in TEMPLATES.items() if tid != "code-interpreter-v1")
    assert get_template("nope") is None


def test_gemini_parse_response_extracts_content_and_usage():
    raw = json.dumps({
        "candidates": [{"content": {"parts": [{"text": "hi"}]}}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 2, "totalTokenCount": 12},
    })

    parsed = gemini.parse_response(raw)

    assert parsed["content"] == {"role": "model", "parts": [{"text": "hi"}]}
    assert parsed["usage"] == {"input": 10, "output": 2, "total": 12}


def test_gemini_parse_response_without_candidates():
    with pytest.raises(LLMError):
        gemini.parse_response(json.dumps({"candidates": []}))
