"""Shared LLM client utilities for the judge transports.

Provides centralized factories for the async HTTP and Anthropic clients
with consistent SSL handling for corporate proxy environments.
"""
from __future__ import annotations

import os

import httpx
import structlog
from anthropic import AsyncAnthropic

logger = structlog.get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


def _verify_ssl(env_var: str) -> bool:
    return os.getenv(env_var, "true").lower() != "false"


def get_groq_http_client(api_key: str | None = None) -> httpx.AsyncClient:
    """Create an async HTTP client for the Groq chat completions API.

    Set GROQ_VERIFY_SSL=false to disable certificate verification behind
    an intercepting proxy.

    Returns:
        Configured httpx.AsyncClient with auth headers and base URL.
    """
    key = api_key if api_key is not None else os.getenv("GROQ_API_KEY", "")
    verify = _verify_ssl("GROQ_VERIFY_SSL")
    if not verify:
        logger.warning("groq_ssl_verification_disabled")

    return httpx.AsyncClient(
        base_url=os.getenv("GROQ_BASE_URL", GROQ_BASE_URL),
        headers={
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        },
        verify=verify,
    )


def get_async_anthropic_client() -> AsyncAnthropic:
    """Create an async Anthropic client with appropriate SSL settings.

    Set ANTHROPIC_VERIFY_SSL=false to disable certificate verification.

    Returns:
        Configured AsyncAnthropic client instance.
    """
    if not _verify_ssl("ANTHROPIC_VERIFY_SSL"):
        logger.warning("anthropic_ssl_verification_disabled")
        return AsyncAnthropic(http_client=httpx.AsyncClient(verify=False))

    return AsyncAnthropic()
