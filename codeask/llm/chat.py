"""Adapter for the managed chat-completion protocol via the ``openai`` SDK."""

from __future__ import annotations

import os
from typing import Any, Optional

import openai
from openai import OpenAI

from ..logging import get_logger
from .base import AuthError, RateLimitError, TransportError


class ChatCompletionRunner:
    """Sends each prompt as a single user message through ``chat.completions``."""

    DEFAULT_MODEL = "gpt-4o-mini"
    ENV_API_KEY_KEYS = ("CODEASK_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: Optional[float] = 0.0,
        max_tokens: Optional[int] = None,
        request_timeout: Optional[float] = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("CODEASK_LLM_MODEL") or self.DEFAULT_MODEL
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.logger = get_logger("llm.chat")
        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or _first_env_value(self.ENV_API_KEY_KEYS)
            if not resolved_key:
                raise AuthError(
                    "OpenAI API key not found. Set CODEASK_LLM_API_KEY or OPENAI_API_KEY, or pass --token."
                )
            client_kwargs: dict[str, Any] = {"api_key": resolved_key, "max_retries": 0}
            resolved_base_url = base_url or os.getenv("CODEASK_LLM_BASE_URL")
            if resolved_base_url:
                client_kwargs["base_url"] = resolved_base_url
            if request_timeout is not None:
                client_kwargs["timeout"] = request_timeout
            self._client = OpenAI(**client_kwargs)

    def send(self, prompt: str) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens

        try:
            response = self._client.chat.completions.create(**kwargs)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise AuthError(f"ChatGPT request rejected: {exc}") from exc
        except openai.RateLimitError as exc:
            raise RateLimitError(f"ChatGPT request rate limited: {exc}") from exc
        except openai.OpenAIError as exc:
            self.logger.error("LLM API call failed: %s", exc)
            raise TransportError(f"ChatGPT request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise TransportError("ChatGPT response contained no choices")
        content = choices[0].message.content
        if content is None:
            raise TransportError("ChatGPT response contained no message content")
        return content


def _first_env_value(keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


__all__ = ["ChatCompletionRunner"]
