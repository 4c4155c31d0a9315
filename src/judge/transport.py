"""Transports that carry one judge prompt to an external model.

A transport only moves text. Timeouts, caching and breaker accounting
belong to the judge client.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import httpx
import structlog
from anthropic import APIError as AnthropicAPIError
from anthropic import AsyncAnthropic

from utils.error_handler import JudgeParseError, error_for_status, handle_transport_error
from utils.llm_client import get_async_anthropic_client, get_groq_http_client

logger = structlog.get_logger(__name__)

DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"


@runtime_checkable
class JudgeTransport(Protocol):
    """complete(system_prompt, user_prompt) -> raw model text. May raise."""

    name: str

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class GroqTransport:
    """OpenAI-compatible chat completions call against Groq."""

    name = "groq"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        model: str = DEFAULT_GROQ_MODEL,
        temperature: float = 0.0,
        max_tokens: int = 64,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = get_groq_http_client()
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            response = await self.client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            raise handle_transport_error(e) from e

        if response.status_code != 200:
            raise error_for_status(
                response.status_code,
                body=response.text,
                retry_after=response.headers.get("retry-after"),
            )

        try:
            data = response.json()
            return data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise JudgeParseError("malformed completion envelope") from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


class AnthropicTransport:
    """Messages API call against Anthropic."""

    name = "anthropic"

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        temperature: float = 0.0,
        max_tokens: int = 64,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = get_async_anthropic_client()
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except AnthropicAPIError as e:
            raise handle_transport_error(e) from e

        return response.content[0].text if response.content else ""

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
