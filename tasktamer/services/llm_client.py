"""
Upstream completion client for Task Tamer.

The dialogue and motivation code depend only on the CompletionClient
protocol: one async call taking a prompt, the ordered conversation history
and a model identifier, returning the decoded JSON body. Every failure
surfaces as UpstreamError with a human-readable cause.

HttpCompletionClient talks to an OpenAI-compatible chat-completions
endpoint with httpx.

Usage:
    client = HttpCompletionClient.from_settings(get_settings())
    payload = await client.complete("Break this task ...", history=[...])
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

from tasktamer.config.settings import Settings
from tasktamer.lib.exceptions import ConfigurationError, UpstreamError

logger = structlog.get_logger(__name__)

# Internal role names -> chat-completions role names
_ROLE_MAP: dict[str, str] = {
    "user": "user",
    "assistant": "assistant",
    "ai": "assistant",
}


class CompletionClient(Protocol):
    """Interface of the upstream completion collaborator."""

    async def complete(
        self,
        prompt_text: str,
        history: list[dict[str, str]] | None = None,
        model: str | None = None,
        **options: Any,
    ) -> Any:
        """Send one completion request and return the decoded payload.

        Raises:
            UpstreamError: Transport failure, non-success status or malformed body
        """
        ...


def build_chat_messages(
    prompt_text: str,
    history: list[dict[str, str]] | None = None,
) -> list[dict[str, str]]:
    """Map {role, text} history plus the prompt to chat-completions messages."""
    messages = [
        {"role": _ROLE_MAP.get(entry.get("role", "user"), "user"), "content": entry.get("text", "")}
        for entry in history or []
    ]
    messages.append({"role": "user", "content": prompt_text})
    return messages


class HttpCompletionClient:
    """Chat-completions client over httpx.

    Args:
        api_url: Endpoint URL; None defers a ConfigurationError to request time
        api_key: Bearer token, optional
        default_model: Model used when a request names none
        timeout: Transport timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_url: str | None,
        api_key: str | None = None,
        default_model: str = "gpt-oss-120b",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpCompletionClient:
        return cls(
            api_url=settings.ai_api_url,
            api_key=settings.ai_api_key,
            default_model=settings.ai_model,
            timeout=float(settings.ai_timeout),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def complete(
        self,
        prompt_text: str,
        history: list[dict[str, str]] | None = None,
        model: str | None = None,
        **options: Any,
    ) -> Any:
        """Send one chat-completions request.

        Args:
            prompt_text: The user-role prompt appended after the history
            history: Ordered {role, text} entries
            model: Model identifier, defaults to the configured model
            **options: Extra body fields (max_tokens, temperature, ...)

        Returns:
            Decoded JSON body

        Raises:
            ConfigurationError: No endpoint URL configured
            UpstreamError: Transport failure, non-success status or malformed JSON
        """
        if not self.api_url:
            raise ConfigurationError("Missing required env: TASKTAMER_AI_API_URL")

        body: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": build_chat_messages(prompt_text, history),
            **options,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport,
            ) as client:
                response = await client.post(self.api_url, json=body, headers=self._headers())
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Request timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise UpstreamError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            logger.warning(
                "upstream_non_success",
                status_code=response.status_code,
                model=body["model"],
            )
            raise UpstreamError(
                f"AI API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("AI API returned malformed JSON") from e
