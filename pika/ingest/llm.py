"""
LLM-backed syllabus extraction.

Sends the assignments prompt to OpenAI (through the SDK) or Gemini (through
its REST API). When PIKA_LLM_ENDPOINT is set, both providers go through that
proxy instead and no API key is needed locally.

The returned JSON is not trusted; callers pass ``parsed_json`` through
``pika.ingest.validate.normalize_assignments``.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import requests
from openai import OpenAI, OpenAIError

from pika.config.settings import Settings, get_settings
from pika.errors import LlmConfigurationError, LlmRequestError
from pika.ingest.prompt import SYSTEM_PROMPT, build_assignments_prompt


logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class LlmProvider(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"


@dataclass(frozen=True)
class LlmResult:
    provider: LlmProvider
    raw_text: str
    parsed_json: Any


def extract_json_candidate(text: str) -> str:
    """Prefer an exact JSON array; otherwise take the outermost [...] segment."""
    trimmed = text.strip()
    if trimmed.startswith("[") and trimmed.endswith("]"):
        return trimmed
    start = trimmed.find("[")
    end = trimmed.rfind("]")
    if start >= 0 and end > start:
        return trimmed[start:end + 1]
    return trimmed


def parse_model_json(raw_text: str) -> Any:
    try:
        return json.loads(extract_json_candidate(raw_text))
    except json.JSONDecodeError as e:
        raise LlmRequestError(f"Model response is not valid JSON: {e}") from e


def _run_endpoint(provider: LlmProvider, prompt: str, settings: Settings) -> LlmResult:
    try:
        res = requests.post(
            settings.llm_endpoint,
            json={"provider": provider.value, "prompt": prompt},
            timeout=settings.llm_timeout_seconds,
        )
    except requests.RequestException as e:
        raise LlmRequestError(f"LLM endpoint unreachable: {e}") from e
    if not res.ok:
        raise LlmRequestError(f"LLM endpoint failed ({res.status_code})")
    try:
        data = res.json()
    except ValueError as e:
        raise LlmRequestError("LLM endpoint returned non-JSON body") from e
    return LlmResult(provider=provider, raw_text=json.dumps(data), parsed_json=data)


def _run_openai(prompt: str, settings: Settings) -> LlmResult:
    if not settings.openai_api_key:
        raise LlmConfigurationError(
            "Missing OPENAI_API_KEY. Set it (or provide PIKA_LLM_ENDPOINT) to enable AI parsing."
        )
    client = OpenAI(api_key=settings.openai_api_key, timeout=settings.llm_timeout_seconds)
    try:
        completion = client.chat.completions.create(
            model=settings.openai_model,
            temperature=0.1,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
    except OpenAIError as e:
        raise LlmRequestError(f"OpenAI request failed: {e}") from e

    raw_text = completion.choices[0].message.content or ""
    return LlmResult(provider=LlmProvider.OPENAI, raw_text=raw_text, parsed_json=parse_model_json(raw_text))


def _run_gemini(prompt: str, settings: Settings) -> LlmResult:
    if not settings.gemini_api_key:
        raise LlmConfigurationError(
            "Missing GEMINI_API_KEY. Set it (or provide PIKA_LLM_ENDPOINT) to enable AI parsing."
        )
    try:
        res = requests.post(
            GEMINI_URL.format(model=requests.utils.quote(settings.gemini_model, safe="")),
            params={"key": settings.gemini_api_key},
            json={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.1},
            },
            timeout=settings.llm_timeout_seconds,
        )
    except requests.RequestException as e:
        raise LlmRequestError(f"Gemini request failed: {e}") from e
    if not res.ok:
        raise LlmRequestError(f"Gemini request failed ({res.status_code}): {res.text}")

    try:
        raw_text = str(res.json()["candidates"][0]["content"]["parts"][0]["text"])
    except (ValueError, KeyError, IndexError, TypeError):
        raw_text = ""
    return LlmResult(provider=LlmProvider.GEMINI, raw_text=raw_text, parsed_json=parse_model_json(raw_text))


def run_assignments_llm(
    provider: LlmProvider,
    extracted_text: str,
    settings: Optional[Settings] = None,
) -> LlmResult:
    """
    Ask the configured model to turn syllabus text into assignment JSON.

    Raises:
        LlmConfigurationError: no key and no proxy endpoint configured
        LlmRequestError: transport failure, HTTP error or unparseable reply
    """
    settings = settings or get_settings()
    provider = LlmProvider(provider)
    prompt = build_assignments_prompt(extracted_text)
    logger.info(f"LLM extraction via {provider.value}: {len(extracted_text)} chars")

    if settings.llm_endpoint:
        return _run_endpoint(provider, prompt, settings)
    if provider == LlmProvider.OPENAI:
        return _run_openai(prompt, settings)
    return _run_gemini(prompt, settings)
