"""Gateway contract shared by every model backend."""

from __future__ import annotations

from typing import Protocol


class GatewayError(RuntimeError):
    """Raised when a model backend cannot produce a response."""


class TransportError(GatewayError):
    """Network failure, unexpected status, or an unusable response payload."""


class AuthError(GatewayError):
    """Credentials were missing or rejected by the backend."""


class RateLimitError(GatewayError):
    """The backend refused the request because of rate limiting."""


class ModelGateway(Protocol):
    """Sends one prompt to a language model and returns the reply text."""

    def send(self, prompt: str) -> str:
        ...


def classify_status(status: int, message: str) -> GatewayError:
    """Map an HTTP status code onto the gateway error taxonomy."""
    if status in (401, 403):
        return AuthError(f"LLM request rejected with status {status}: {message}")
    if status == 429:
        return RateLimitError(f"LLM request rate limited: {message}")
    return TransportError(f"LLM request failed with status {status}: {message}")


__all__ = [
    "AuthError",
    "GatewayError",
    "ModelGateway",
    "RateLimitError",
    "TransportError",
    "classify_status",
]
