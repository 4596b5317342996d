import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import httpx

from tempo.core.errors import CredentialError, ProviderConnectionError, ProviderError
from tempo.core.prompt_builder import LayeredPrompt
from tempo.core.security import mask_api_key, validate_credential

logger = logging.getLogger("uvicorn.error")

ANTHROPIC_API_URL = os.getenv("ANTHROPIC_API_URL", "https://api.anthropic.com/v1/messages")
ANTHROPIC_API_VERSION = os.getenv("ANTHROPIC_API_VERSION", "2023-06-01")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4000"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))
LLM_WRITE_TIMEOUT_SECONDS = float(os.getenv("LLM_WRITE_TIMEOUT_SECONDS", "30"))
LLM_POOL_TIMEOUT_SECONDS = float(os.getenv("LLM_POOL_TIMEOUT_SECONDS", "60"))
LLM_RETRY_COUNT = int(os.getenv("LLM_RETRY_COUNT", "1"))
LLM_RETRY_BACKOFF_SECONDS = float(os.getenv("LLM_RETRY_BACKOFF_SECONDS", "0.75"))

# 4xx responses are never retried.
RETRYABLE_STATUS_CODES = {500, 502, 503, 504, 529}


def _http_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=LLM_CONNECT_TIMEOUT_SECONDS,
        read=LLM_TIMEOUT_SECONDS,
        write=LLM_WRITE_TIMEOUT_SECONDS,
        pool=LLM_POOL_TIMEOUT_SECONDS,
    )


def default_credential() -> str:
    return os.getenv("ANTHROPIC_API_KEY", "")


@dataclass(frozen=True)
class RawModelOutput:
    content: list[dict[str, Any]]
    model: str
    stop_reason: Optional[str] = None
    usage: dict[str, int] = field(default_factory=dict)


def build_payload(prompt: LayeredPrompt) -> dict[str, Any]:
    system_blocks = []
    for layer in prompt.system_layers:
        block: dict[str, Any] = {"type": "text", "text": layer.text}
        if layer.cache_eligible:
            block["cache_control"] = {"type": "ephemeral"}
        system_blocks.append(block)
    return {
        "model": ANTHROPIC_MODEL,
        "max_tokens": LLM_MAX_TOKENS,
        "temperature": LLM_TEMPERATURE,
        "system": system_blocks,
        "messages": [{"role": "user", "content": prompt.user_data}],
    }


def _usage_tokens(data: dict[str, Any]) -> dict[str, int]:
    usage = data.get("usage") or {}
    return {
        "input_tokens": int(usage.get("input_tokens", 0) or 0),
        "output_tokens": int(usage.get("output_tokens", 0) or 0),
        "cache_creation_input_tokens": int(usage.get("cache_creation_input_tokens", 0) or 0),
        "cache_read_input_tokens": int(usage.get("cache_read_input_tokens", 0) or 0),
    }


def _anthropic_request(payload: dict[str, Any], api_key: str) -> RawModelOutput:
    response = httpx.post(
        ANTHROPIC_API_URL,
        headers={
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        },
        json=payload,
        timeout=_http_timeout(),
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError("Anthropic response body is not an object")
    content = data.get("content")
    return RawModelOutput(
        content=content if isinstance(content, list) else [],
        model=str(data.get("model") or payload["model"]),
        stop_reason=data.get("stop_reason"),
        usage=_usage_tokens(data),
    )


class AdviceClient(Protocol):
    def generate(self, prompt: LayeredPrompt, credential: Optional[str]) -> RawModelOutput:
        ...


class AnthropicAdviceClient:
    def generate(self, prompt: LayeredPrompt, credential: Optional[str]) -> RawModelOutput:
        api_key = validate_credential(credential)
        payload = build_payload(prompt)
        attempts = max(1, LLM_RETRY_COUNT + 1)
        for idx in range(attempts):
            try:
                output = _anthropic_request(payload, api_key)
                logger.info(
                    "advice_llm_usage model=%s input=%s output=%s cache_read=%s cache_write=%s",
                    output.model,
                    output.usage.get("input_tokens"),
                    output.usage.get("output_tokens"),
                    output.usage.get("cache_read_input_tokens"),
                    output.usage.get("cache_creation_input_tokens"),
                )
                return output
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code if exc.response is not None else None
                detail = ""
                if exc.response is not None:
                    detail = (exc.response.text or "").strip()[:220]
                if status in {401, 403}:
                    raise CredentialError(
                        f"Claude API rejected the key {mask_api_key(api_key)} (status={status})",
                        status_code=status,
                    ) from exc
                if status in RETRYABLE_STATUS_CODES and idx < attempts - 1:
                    self._backoff(idx, f"status={status}")
                    continue
                raise ProviderError(
                    f"Claude request failed (status={status}): {detail or 'no response body'}",
                    status_code=status,
                ) from exc
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if idx < attempts - 1:
                    self._backoff(idx, type(exc).__name__)
                    continue
                raise ProviderConnectionError(f"Claude request failed: {str(exc)[:220] or type(exc).__name__}") from exc
            except ValueError as exc:
                raise ProviderError(f"Claude response could not be decoded: {str(exc)[:220]}") from exc
        raise ProviderConnectionError("Claude request failed after retries")

    @staticmethod
    def _backoff(attempt: int, reason: str) -> None:
        delay = LLM_RETRY_BACKOFF_SECONDS * (2**attempt)
        logger.warning("advice_llm_retry attempt=%s reason=%s delay=%.2f", attempt + 1, reason, delay)
        time.sleep(delay)


def get_advice_client() -> AdviceClient:
    return AnthropicAdviceClient()
