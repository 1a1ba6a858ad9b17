import json
import logging
import os
import re
from typing import Any

from openai import OpenAI, OpenAIError

from studykit.config import settings
from studykit.errors import GenerationError

logger = logging.getLogger(__name__)

CHAT_MODEL = settings.llm_model or os.getenv("OPENAI_CHAT_MODEL", "gpt-4o")
REQUEST_TIMEOUT = 120.0

_client: OpenAI | None = None


def _api_key():
    """OPENAI_API_KEY from settings/.env."""
    return settings.openai_api_key or os.getenv("OPENAI_API_KEY")


def _client_new() -> OpenAI:
    global _client
    if _client is None:
        key = _api_key()
        _client = OpenAI(api_key=key, timeout=REQUEST_TIMEOUT) if key else OpenAI(timeout=REQUEST_TIMEOUT)
    return _client


def chat(system: str, user: str, temperature: float | None = None, operation: str = "chat") -> str:
    """Runs one chat completion and returns the text of the first choice."""
    try:
        r = _client_new().chat.completions.create(
            model=CHAT_MODEL,
            messages=[{"role": "system", "content": system},
                      {"role": "user", "content": user}],
            temperature=settings.llm_temperature if temperature is None else temperature,
        )
    except OpenAIError as e:
        logger.warning("LLM call failed for %s: %s", operation, e)
        raise GenerationError(operation, str(e)) from e
    return (r.choices[0].message.content or "").strip()


def _json_from_llm(raw: str) -> Any:
    m = re.search(r"```(?:json)?\s*(\{[\s\S]*\}|\[[\s\S]*\])\s*```", raw, re.IGNORECASE)
    if m: raw = m.group(1)
    m2 = re.search(r"(\{[\s\S]*\}|\[[\s\S]*\])", raw)
    if m2: raw = m2.group(1)
    return json.loads(raw)


def chat_json(system: str, user: str, operation: str, temperature: float | None = None) -> Any:
    """Like ``chat`` but asks for a JSON object and returns it decoded.

    Raises ``GenerationError`` for transport failures and for replies that
    are not valid JSON.
    """
    try:
        r = _client_new().chat.completions.create(
            model=CHAT_MODEL,
            messages=[{"role": "system", "content": system},
                      {"role": "user", "content": user}],
            temperature=settings.llm_temperature if temperature is None else temperature,
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        logger.warning("LLM call failed for %s: %s", operation, e)
        raise GenerationError(operation, str(e)) from e

    raw = r.choices[0].message.content or ""
    try:
        return _json_from_llm(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("LLM returned malformed JSON for %s: %.200s", operation, raw)
        raise GenerationError(operation, "malformed JSON response") from e
