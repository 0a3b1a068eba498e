"""
Google Gemini provider implementation (function-calling capable).
"""
import json
import aiohttp
from typing import Any, Dict, List, Optional
from app.core.config import settings
from app.core.exceptions import LLMError, RateLimitError
from app.core.logging import log


DEFAULT_MODEL = "gemini-2.5-flash"
API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
PROVIDER = "gemini"


async def generate(
    contents: List[Dict[str, Any]],
    system_prompt: str = "",
    tools: Optional[List[Dict[str, Any]]] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Call Gemini generateContent with a full conversation.

    Args:
        contents: Conversation turns in Gemini format ({"role", "parts"})
        tools: Function declarations exposed to the model

    Returns:
        {"content": <candidate content dict>, "usage": {...}}

    Raises:
        RateLimitError on 429, LLMError on any other API or parse failure
    """
    api_key = settings.llm.gemini_api_key
    if not api_key:
        raise LLMError(PROVIDER, "GEMINI_API_KEY not configured")

    model = model or settings.llm.default_model or DEFAULT_MODEL
    url = f"{API_URL}/{model}:generateContent?key={api_key}"

    payload: Dict[str, Any] = {
        "contents": contents,
        "generationConfig": {
            "temperature": settings.llm.temperature if temperature is None else temperature,
            "maxOutputTokens": max_tokens or settings.llm.max_tokens,
        },
    }

    # Add system instruction separately (Gemini's preferred format)
    if system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

    if tools:
        payload["tools"] = [{"functionDeclarations": tools}]

    timeout = aiohttp.ClientTimeout(total=settings.llm.request_timeout)
    async with aiohttp.ClientSession() as session:
        async with session.post(url, json=payload, timeout=timeout) as response:
            text = await response.text()

            if response.status == 429:
                log("GEMINI", f"429 Rate limit response: {text[:500]}")
                raise RateLimitError(PROVIDER, text[:200])

            if response.status != 200:
                log("GEMINI", f"Error {response.status}: {text[:500]}")
                raise LLMError(PROVIDER, f"API error {response.status}: {text[:200]}")

    return parse_response(text)


def parse_response(text: str) -> Dict[str, Any]:
    """Extract the first candidate's content and the usage block."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMError(PROVIDER, f"Failed to parse response: {e}")

    candidates = data.get("candidates", [])
    if not candidates:
        raise LLMError(PROVIDER, "No candidates in response")

    content = candidates[0].get("content") or {"role": "model", "parts": []}
    content.setdefault("role", "model")
    content.setdefault("parts", [])

    usage_metadata = data.get("usageMetadata", {})
    usage = {
        "input": usage_metadata.get("promptTokenCount", 0),
        "output": usage_metadata.get("candidatesTokenCount", 0),
        "total": usage_metadata.get("totalTokenCount", 0),
    }

    return {"content": content, "usage": usage}
