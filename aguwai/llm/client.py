"""Language-model provider contract and the Anthropic implementation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

import anthropic

from aguwai.config import settings

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


class LLMProvider(Protocol):
    """Anything that can turn a message list into a completion string."""

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
    ) -> str: ...


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


class AnthropicProvider:
    """Single-shot Claude calls bounded by a timeout.

    Timeouts surface as ``TimeoutError`` and API failures as
    ``anthropic.APIError``; callers fold both into their fail-soft paths.
    """

    def __init__(
        self,
        model: str | None = None,
        *,
        max_tokens: int = 4096,
        timeout: float | None = None,
    ) -> None:
        self._model = model or settings.chat_model
        self._max_tokens = max_tokens
        self._timeout = timeout or settings.llm_timeout_seconds

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
    ) -> str:
        client = _get_client()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": messages,
        }
        if system is not None:
            kwargs["system"] = system

        t0 = time.monotonic()
        response = await asyncio.wait_for(client.messages.create(**kwargs), self._timeout)
        logger.debug("Completion from %s in %.2fs", self._model, time.monotonic() - t0)
        return "".join(block.text for block in response.content if block.type == "text")
