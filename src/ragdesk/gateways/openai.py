"""Gateway helpers for Azure OpenAI chat completions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

import httpx

from ..errors import (
    LLMAuthenticationError,
    LLMDeploymentNotFoundError,
    LLMGatewayError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from .registry import GatewayConfig

LOGGER = logging.getLogger(__name__)

TIMEOUT_BUFFER_SECONDS = 5.0
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7

TIMEOUT_MESSAGE = "The AI service is taking too long to respond. Please try again."
RATE_LIMIT_MESSAGE = "The AI service is currently overloaded. Please wait a moment and try again."
AUTH_MESSAGE = "AI service authentication failed. Please contact support."
DEPLOYMENT_MESSAGE = "The AI model configuration is incorrect. Please contact support."
GENERIC_MESSAGE = "Failed to get AI response. Please try again."
MOCK_REPLY = "This is a mock response from the OpenAI service."


@dataclass(frozen=True)
class ChatCompletion:
    content: str
    tokens_used: int = 0


class ChatGateway(Protocol):
    def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> ChatCompletion:
        ...


def _coerce_messages(messages: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    if not isinstance(messages, Iterable):
        raise TypeError("messages must be an iterable of role/content dictionaries")
    normalized: list[dict[str, Any]] = []
    for item in messages:
        if not isinstance(item, Mapping):
            raise TypeError("each message must be a mapping with at least role and content")
        role = item.get("role")
        content = item.get("content")
        if not role:
            raise ValueError("message missing role")
        if content is None:
            content = ""
        normalized.append({"role": str(role), "content": content})
    return normalized


def _classify_status(status_code: int) -> LLMGatewayError:
    if status_code == 429:
        return LLMRateLimitError(RATE_LIMIT_MESSAGE, status_code=status_code)
    if status_code in (401, 403):
        return LLMAuthenticationError(AUTH_MESSAGE, status_code=status_code)
    if status_code == 404:
        return LLMDeploymentNotFoundError(DEPLOYMENT_MESSAGE, status_code=status_code)
    return LLMGatewayError(GENERIC_MESSAGE, status_code=status_code)


class OpenAIGatewayClient:
    """Client for an Azure OpenAI deployment's chat completion endpoint."""

    def __init__(self, gateway: GatewayConfig) -> None:
        self._gateway = gateway
        self._deployment = str(gateway.config.get("deployment") or "")
        self._api_version = str(gateway.config.get("api_version") or "")
        self._timeout = float(gateway.timeout_seconds) + TIMEOUT_BUFFER_SECONDS
        self._headers = {str(key): str(value) for key, value in gateway.headers.items()}

    @property
    def deployment(self) -> str:
        return self._deployment

    def build_payload(
        self,
        *,
        messages: Sequence[Mapping[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "messages": _coerce_messages(messages),
            "top_p": 1,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def chat(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """POST ``payload`` and return the decoded response, mapping failures to user-safe errors."""

        if not self._deployment:
            raise LLMDeploymentNotFoundError(DEPLOYMENT_MESSAGE)
        request_body = dict(payload)
        self._gateway.validate_request(request_body)
        path = f"/openai/deployments/{self._deployment}/chat/completions"

        LOGGER.info("Sending request to Azure OpenAI (%s)", self._deployment)
        try:
            with httpx.Client(base_url=self._gateway.endpoint, timeout=self._timeout) as client:
                response = client.post(
                    path,
                    json=request_body,
                    headers=self._headers,
                    params={"api-version": self._api_version},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            LOGGER.error("Azure OpenAI request timed out", extra={"deployment": self._deployment})
            raise LLMTimeoutError(TIMEOUT_MESSAGE) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            LOGGER.error(
                "Azure OpenAI API error (status %s)",
                status_code,
                extra={"deployment": self._deployment},
            )
            raise _classify_status(status_code) from exc
        except httpx.HTTPError as exc:
            LOGGER.error("Azure OpenAI request failed: %s", exc)
            raise LLMGatewayError(GENERIC_MESSAGE) from exc

        if not isinstance(data, Mapping):
            raise LLMGatewayError(GENERIC_MESSAGE)
        try:
            self._gateway.validate_response(data)
        except ValueError as exc:
            raise LLMGatewayError(GENERIC_MESSAGE) from exc
        return dict(data)

    def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> ChatCompletion:
        payload = self.build_payload(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        response = self.chat(payload)
        content = _extract_primary_content(response)
        if not content:
            LOGGER.warning("Empty or invalid response received from Azure OpenAI")
            raise LLMGatewayError(GENERIC_MESSAGE)
        usage = response.get("usage")
        tokens = int(usage.get("total_tokens") or 0) if isinstance(usage, Mapping) else 0
        LOGGER.info("Received response from Azure OpenAI (%s tokens)", tokens or "unknown")
        return ChatCompletion(content=content, tokens_used=tokens)


class MockChatClient:
    """Offline stand-in that answers every request with a fixed reply."""

    def __init__(
        self,
        reply: str | Callable[[List[Dict[str, Any]]], str] = MOCK_REPLY,
        *,
        tokens_used: int = 25,
    ) -> None:
        self._reply = reply
        self._tokens_used = tokens_used
        self.calls: List[List[Dict[str, Any]]] = []

    def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> ChatCompletion:
        normalized = _coerce_messages(messages)
        self.calls.append(normalized)
        content = self._reply(normalized) if callable(self._reply) else self._reply
        return ChatCompletion(content=content, tokens_used=self._tokens_used)


def _extract_primary_content(response: Mapping[str, Any]) -> Optional[str]:
    choices = response.get("choices")
    if not isinstance(choices, Iterable):
        return None
    for choice in choices:
        if not isinstance(choice, Mapping):
            continue
        message = choice.get("message")
        if isinstance(message, Mapping):
            content = message.get("content")
            if content:
                return str(content)
    return None


__all__ = [
    "ChatCompletion",
    "ChatGateway",
    "MockChatClient",
    "OpenAIGatewayClient",
]
