"""Tests for the Anthropic-backed LLM provider."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aguwai.config import settings
from aguwai.llm.client import AnthropicProvider


def _response(*texts: str) -> MagicMock:
    response = MagicMock()
    response.content = [MagicMock(type="text", text=t) for t in texts]
    return response


async def test_complete_basic() -> None:
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(return_value=_response("hello ", "world"))

    with patch("aguwai.llm.client._get_client", return_value=mock_client):
        result = await AnthropicProvider("claude-test-model").complete(
            [{"role": "user", "content": "hi"}]
        )

    assert result == "hello world"
    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert call_kwargs["model"] == "claude-test-model"
    assert call_kwargs["max_tokens"] == 4096
    assert "system" not in call_kwargs


async def test_complete_with_system_skips_non_text_blocks() -> None:
    response = _response("answer")
    response.content.insert(0, MagicMock(type="thinking", text="ignored"))
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(return_value=response)

    with patch("aguwai.llm.client._get_client", return_value=mock_client):
        result = await AnthropicProvider("m").complete(
            [{"role": "user", "content": "hi"}], system="You are helpful."
        )

    assert result == "answer"
    assert mock_client.messages.create.call_args.kwargs["system"] == "You are helpful."


async def test_complete_times_out() -> None:
    async def slow(**kwargs):
        await asyncio.sleep(1)

    mock_client = MagicMock()
    mock_client.messages.create = slow

    with (
        patch("aguwai.llm.client._get_client", return_value=mock_client),
        pytest.raises(TimeoutError),
    ):
        await AnthropicProvider("m", timeout=0.01).complete([{"role": "user", "content": "hi"}])


def test_default_model_from_settings() -> None:
    assert AnthropicProvider().model == settings.chat_model
