from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from .config import DEFAULT_BASE_URL, DEFAULT_MODEL, Settings
from .errors import ConfigurationMissing, MalformedModelOutput, ModelUnavailable, truncate
from .models import Completion, TokenUsage


logger = logging.getLogger("uvicorn.error")
CACHE_CONTROL = {"type": "ephemeral"}


@dataclass(frozen=True)
class SystemBlock:
    text: str
    cache: bool = False


def _extract_content(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts: list[str] = []
        for item in value:
            if isinstance(item, dict):
                text = item.get("text")
                if text:
                    parts.append(str(text))
        return "\n".join(parts).strip()
    return str(value or "").strip()


def _is_temperature_unsupported(exc: APIStatusError) -> bool:
    message = (getattr(exc, "message", "") or str(exc)).lower()
    return "temperature" in message and "default (1)" in message


def _int_attr(source: Any, name: str) -> int:
    value = getattr(source, name, None) if source is not None else None
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _usage_from(response: Any) -> TokenUsage:
    usage = getattr(response, "usage", None)
    if usage is None:
        return TokenUsage()
    details = getattr(usage, "prompt_tokens_details", None)
    cache_read = _int_attr(usage, "cache_read_input_tokens") or _int_attr(details, "cached_tokens")
    cache_write = _int_attr(usage, "cache_creation_input_tokens")
    prompt_tokens = _int_attr(usage, "prompt_tokens") or _int_attr(usage, "input_tokens")
    completion_tokens = _int_attr(usage, "completion_tokens") or _int_attr(usage, "output_tokens")
    # prompt_tokens counts cached tokens too; they are billed at the cache rates.
    return TokenUsage(
        input_tokens=max(prompt_tokens - cache_read - cache_write, 0),
        output_tokens=completion_tokens,
        cache_read_tokens=cache_read,
        cache_write_tokens=cache_write,
    )


def build_system_message(system_blocks: Sequence[SystemBlock]) -> dict:
    content: List[dict] = []
    for block in system_blocks:
        part: dict = {"type": "text", "text": block.text}
        if block.cache:
            part["cache_control"] = dict(CACHE_CONTROL)
        content.append(part)
    return {"role": "system", "content": content}


class LLMClient:
    """Chat-completions client for the OpenAI-compatible model gateway.

    One instance is built at startup and shared by the coaching, analysis and
    question flows. Each call is a single attempt bounded by its own timeout.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.base_url = base_url
        self.model = model
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationMissing(
                    'Missing GPTSAPI_KEY. Set it before calling the coaching endpoints '
                    '(example: export GPTSAPI_KEY="YOUR_KEY_HERE").'
                )
            self._client = OpenAI(base_url=self.base_url, api_key=self.api_key, max_retries=0)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def complete(
        self,
        *,
        system_blocks: Sequence[SystemBlock],
        messages: Sequence[dict],
        max_tokens: int,
        temperature: Optional[float],
        timeout_seconds: float,
        prefill: Optional[str] = None,
    ) -> Completion:
        client = self._get_client().with_options(timeout=timeout_seconds, max_retries=0)

        request_messages: List[dict] = []
        if system_blocks:
            request_messages.append(build_system_message(system_blocks))
        request_messages.extend({"role": item["role"], "content": item["content"]} for item in messages)
        if prefill:
            request_messages.append({"role": "assistant", "content": prefill})

        request_kwargs: dict = {
            "model": self.model,
            "messages": request_messages,
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            request_kwargs["temperature"] = temperature

        try:
            try:
                response = client.chat.completions.create(**request_kwargs)
            except APIStatusError as exc:
                if "temperature" not in request_kwargs or not _is_temperature_unsupported(exc):
                    raise
                request_kwargs.pop("temperature")
                response = client.chat.completions.create(**request_kwargs)
        except APITimeoutError as exc:
            raise ModelUnavailable(f"LLM request timed out after {timeout_seconds:g} seconds.") from exc
        except APIConnectionError as exc:
            raise ModelUnavailable(f"Failed to connect to LLM provider: {exc}") from exc
        except APIStatusError as exc:
            status_code = getattr(exc, "status_code", None)
            detail = truncate(getattr(exc, "message", None) or str(exc))
            if status_code is not None:
                raise ModelUnavailable(f"LLM request failed ({status_code}): {detail}") from exc
            raise ModelUnavailable(f"LLM request failed: {detail}") from exc

        choice = response.choices[0] if getattr(response, "choices", None) else None
        if choice is None:
            raise MalformedModelOutput("LLM response did not contain choices.")
        text = _extract_content(choice.message.content)
        usage = _usage_from(response)
        logger.info(
            "llm_call_done model=%s input_tokens=%s output_tokens=%s cache_read_tokens=%s",
            self.model,
            usage.input_tokens,
            usage.output_tokens,
            usage.cache_read_tokens,
        )
        return Completion(text=text, usage=usage, model=self.model)
