"""Model gateway adapters."""

from __future__ import annotations

from ..config import ConfigError, LLMConfig
from .base import (
    AuthError,
    GatewayError,
    ModelGateway,
    RateLimitError,
    TransportError,
)
from .chat import ChatCompletionRunner
from .runner import HTTPChatRunner

_HTTP_BACKENDS = {"http", "rest", "qwen"}
_CHAT_BACKENDS = {"openai", "chat", "chatgpt"}


def build_gateway(config: LLMConfig | None = None) -> ModelGateway:
    """Construct the backend named by ``config.backend`` (HTTP when unset)."""
    config = config or LLMConfig()
    backend = (config.backend or "http").strip().lower()
    if backend in _HTTP_BACKENDS:
        kwargs: dict[str, object] = {
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        if config.base_url:
            kwargs["base_url"] = config.base_url
        if config.api_key:
            kwargs["api_key"] = config.api_key
        if config.request_timeout is not None:
            kwargs["request_timeout"] = config.request_timeout
        return HTTPChatRunner(config.model, **kwargs)  # type: ignore[arg-type]
    if backend in _CHAT_BACKENDS:
        return ChatCompletionRunner(
            config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            temperature=config.temperature if config.temperature is not None else 0.0,
            max_tokens=config.max_tokens,
            request_timeout=config.request_timeout,
        )
    raise ConfigError(f"Unknown LLM backend '{config.backend}'. Use 'http' or 'openai'.")


__all__ = [
    "AuthError",
    "ChatCompletionRunner",
    "GatewayError",
    "HTTPChatRunner",
    "ModelGateway",
    "RateLimitError",
    "TransportError",
    "build_gateway",
]
