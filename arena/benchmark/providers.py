"""Model provider clients.

Providers
---------
``openai``
    Chat Completions API.  Requires ``OPENAI_API_KEY``.
``anthropic``
    Messages API, always streamed.  Requires ``ANTHROPIC_API_KEY``.
``google``
    Gemini ``generateContent`` / ``streamGenerateContent``.  Requires
    ``GOOGLE_API_KEY``.

All providers share one call signature and return a
:class:`~arena.benchmark.models.ModelResult`.  When *on_chunk* is given the
call streams and forwards every text delta to it as it arrives.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Iterator, Optional

import httpx

from arena.benchmark.models import BenchmarkConfig, ModelConfig, ModelResult
from arena.config import settings

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]

_ANTHROPIC_VERSION = "2023-06-01"


class UnsupportedProviderError(ValueError):
    """Raised when a model config names a provider with no client."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported provider '{provider}'.")
        self.provider = provider


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_key(env_var: str) -> str:
    api_key = os.environ.get(env_var, "")
    if not api_key:
        raise EnvironmentError(f"{env_var} is not set.")
    return api_key


def _iter_sse_data(response: httpx.Response) -> Iterator[dict[str, Any]]:
    """Yield the JSON payload of every ``data:`` line of an SSE response."""
    for line in response.iter_lines():
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        if not payload or payload == "[DONE]":
            continue
        try:
            yield json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("skipping non-JSON SSE payload: %r", payload[:80])


def _normalize_openai_content(content: Any) -> str:
    if isinstance(content, list):
        return "".join((part or {}).get("text", "") for part in content)
    return content if isinstance(content, str) else ""


def _client() -> httpx.Client:
    return httpx.Client(timeout=settings.request_timeout)


# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------

def _call_openai(
    model: ModelConfig,
    system_prompt: str,
    user_message: str,
    config: BenchmarkConfig,
    on_chunk: Optional[ChunkCallback],
) -> ModelResult:
    api_key = _require_key("OPENAI_API_KEY")
    reasoning_model = "gpt-5" in model.model

    payload: dict[str, Any] = {
        "model": model.model,
        "max_completion_tokens": config.max_tokens_for(model),
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ],
        "stream": on_chunk is not None,
    }
    if reasoning_model:
        payload["store"] = True
    else:
        payload["temperature"] = config.temperature_for(model)

    url = f"{settings.openai_base_url}/chat/completions"
    headers = {"Authorization": f"Bearer {api_key}"}

    with _client() as client:
        if on_chunk is None:
            response = client.post(url, headers=headers, json=payload)
            response.raise_for_status()
            body = response.json()
            message = ((body.get("choices") or [{}])[0]).get("message") or {}
            text = _normalize_openai_content(message.get("content"))
            if not text and message.get("reasoning_content"):
                text = message["reasoning_content"]
            return ModelResult(output_text=text, raw_response=body)

        parts: list[str] = []
        final: Any = None
        with client.stream("POST", url, headers=headers, json=payload) as response:
            response.raise_for_status()
            for chunk in _iter_sse_data(response):
                choices = chunk.get("choices") or []
                if not choices:
                    continue
                delta = (choices[0].get("delta") or {}).get("content")
                if delta:
                    parts.append(delta)
                    on_chunk(delta)
                if choices[0].get("finish_reason"):
                    final = chunk
        return ModelResult(output_text="".join(parts), raw_response=final)


def _call_anthropic(
    model: ModelConfig,
    system_prompt: str,
    user_message: str,
    config: BenchmarkConfig,
    on_chunk: Optional[ChunkCallback],
) -> ModelResult:
    api_key = _require_key("ANTHROPIC_API_KEY")
    payload = {
        "model": model.model,
        "temperature": config.temperature_for(model),
        "max_tokens": config.max_tokens_for(model),
        "system": system_prompt,
        "messages": [{"role": "user", "content": user_message}],
        "stream": True,
    }
    headers = {"x-api-key": api_key, "anthropic-version": _ANTHROPIC_VERSION}

    parts: list[str] = []
    final: Any = None
    with _client() as client:
        with client.stream(
            "POST", f"{settings.anthropic_base_url}/messages", headers=headers, json=payload
        ) as response:
            response.raise_for_status()
            for event in _iter_sse_data(response):
                kind = event.get("type")
                delta = event.get("delta") or {}
                if kind == "content_block_delta" and delta.get("type") == "text_delta":
                    text = delta.get("text", "")
                    parts.append(text)
                    if on_chunk is not None:
                        on_chunk(text)
                elif kind == "message_stop":
                    final = event
    return ModelResult(output_text="".join(parts), raw_response=final)


def _gemini_text(body: dict[str, Any]) -> str:
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def _call_google(
    model: ModelConfig,
    system_prompt: str,
    user_message: str,
    config: BenchmarkConfig,
    on_chunk: Optional[ChunkCallback],
) -> ModelResult:
    api_key = _require_key("GOOGLE_API_KEY")
    payload = {
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"role": "user", "parts": [{"text": user_message}]}],
        "generationConfig": {
            "temperature": config.temperature_for(model),
            "maxOutputTokens": config.max_tokens_for(model),
        },
    }
    headers = {"x-goog-api-key": api_key}
    base = f"{settings.google_base_url}/models/{model.model}"

    with _client() as client:
        if on_chunk is None:
            response = client.post(f"{base}:generateContent", headers=headers, json=payload)
            response.raise_for_status()
            body = response.json()
            return ModelResult(output_text=_gemini_text(body), raw_response=body)

        parts: list[str] = []
        final: Any = None
        with client.stream(
            "POST",
            f"{base}:streamGenerateContent",
            params={"alt": "sse"},
            headers=headers,
            json=payload,
        ) as response:
            response.raise_for_status()
            for chunk in _iter_sse_data(response):
                text = _gemini_text(chunk)
                if text:
                    parts.append(text)
                    on_chunk(text)
                final = chunk
        return ModelResult(output_text="".join(parts), raw_response=final)


_PROVIDERS: dict[str, Callable[..., ModelResult]] = {
    "openai": _call_openai,
    "anthropic": _call_anthropic,
    "google": _call_google,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def call_model(
    model: ModelConfig,
    system_prompt: str,
    user_message: str,
    config: BenchmarkConfig,
    on_chunk: Optional[ChunkCallback] = None,
) -> ModelResult:
    """Send the rendered prompt to *model*'s provider and collect its answer.

    Raises:
        UnsupportedProviderError: If the provider has no client.
        EnvironmentError: If the provider's API key is not set.
        httpx.HTTPStatusError: If the provider returns a non-2xx status.
    """
    provider = (model.provider or "").lower()
    impl = _PROVIDERS.get(provider)
    if impl is None:
        raise UnsupportedProviderError(model.provider)
    logger.info("calling %s:%s (stream=%s)", provider, model.model, on_chunk is not None)
    return impl(model, system_prompt, user_message, config, on_chunk)
