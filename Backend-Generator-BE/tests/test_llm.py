"""
Tests for src/run_utils/llm.py and src/run_utils/model_registry.py
The provider client is mocked; nothing here touches the network.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from src.run_utils.llm import LLMClient
from src.run_utils.model_registry import (
    AVAILABLE_MODELS,
    DEFAULT_MODEL,
    list_models,
    resolve_model,
)
from src.utils.errors import ProviderError

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
    )


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    def __init__(self, chunks, fail_after=None):
        self.chunks = chunks
        self.fail_after = fail_after
        self.closed = False

    async def __aiter__(self):
        for i, c in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise openai.APIConnectionError(request=_REQUEST)
            yield c

    async def close(self):
        self.closed = True


def _client_with(create):
    llm = LLMClient(api_key="test-key", base_url="https://openrouter.ai/api/v1", referer="https://x", title="T")
    llm._client = MagicMock()
    llm._client.chat.completions.create = create
    return llm


class TestModelRegistry:
    def test_known_name_resolves(self):
        assert resolve_model("gemini-2.0-flash") == "google/gemini-2.0-flash-exp:free"
        assert resolve_model("devstral-small") == "mistralai/devstral-small:free"

    def test_unknown_name_passes_through(self):
        assert resolve_model("openai/gpt-4o") == "openai/gpt-4o"

    def test_listing(self):
        assert list_models() == list(AVAILABLE_MODELS)
        assert DEFAULT_MODEL in list_models()


class TestComplete:
    async def test_returns_message_content_and_sends_options(self):
        create = AsyncMock(return_value=_completion("hello"))
        llm = _client_with(create)

        out = await llm.complete("m/id", [{"role": "user", "content": "hi"}], temperature=0.3, max_tokens=8000)

        assert out == "hello"
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "m/id"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 8000
        assert kwargs["top_p"] == 1

    async def test_defaults(self):
        create = AsyncMock(return_value=_completion("x"))
        await _client_with(create).complete("m", [])
        kwargs = create.await_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"], kwargs["top_p"]) == (0.7, 4000, 1)

    async def test_none_content_is_empty_string(self):
        llm = _client_with(AsyncMock(return_value=_completion(None)))
        assert await llm.complete("m", []) == ""

    async def test_no_choices(self):
        llm = _client_with(AsyncMock(return_value=SimpleNamespace(choices=[], usage=None)))
        with pytest.raises(ProviderError):
            await llm.complete("m", [])

    async def test_status_error_is_provider_error_without_retry(self):
        response = httpx.Response(429, request=_REQUEST)
        create = AsyncMock(side_effect=openai.RateLimitError("rate limited", response=response, body=None))
        llm = _client_with(create)

        with pytest.raises(ProviderError) as exc:
            await llm.complete("m", [])
        assert exc.value.status == 429
        assert "rate limited" in exc.value.provider_message
        assert create.await_count == 1

    async def test_connection_error_is_provider_error(self):
        llm = _client_with(AsyncMock(side_effect=openai.APIConnectionError(request=_REQUEST)))
        with pytest.raises(ProviderError) as exc:
            await llm.complete("m", [])
        assert exc.value.status is None

    async def test_missing_key(self):
        llm = LLMClient(api_key=None, base_url="https://openrouter.ai/api/v1")
        assert llm.configured is False
        with pytest.raises(ProviderError):
            await llm.complete("m", [])

    def test_client_built_without_retries(self):
        llm = LLMClient(api_key="k", base_url="https://openrouter.ai/api/v1", referer="https://r", title="T")
        client = llm._get_client()
        assert client.max_retries == 0
        assert llm.headers == {"HTTP-Referer": "https://r", "X-Title": "T"}
        assert llm._get_client() is client


class TestCompleteStream:
    async def test_yields_fragments_and_closes(self):
        stream = FakeStream([_chunk("Hel"), _chunk(None), SimpleNamespace(choices=[]), _chunk("lo")])
        create = AsyncMock(return_value=stream)
        llm = _client_with(create)

        out = [f async for f in llm.complete_stream("m", [])]

        assert out == ["Hel", "lo"]
        assert create.await_args.kwargs["stream"] is True
        assert stream.closed

    async def test_consumer_stopping_early_closes_stream(self):
        stream = FakeStream([_chunk("a"), _chunk("b"), _chunk("c")])
        llm = _client_with(AsyncMock(return_value=stream))

        fragments = llm.complete_stream("m", [])
        assert await fragments.__anext__() == "a"
        await fragments.aclose()

        assert stream.closed

    async def test_error_mid_stream(self):
        stream = FakeStream([_chunk("a"), _chunk("b")], fail_after=1)
        llm = _client_with(AsyncMock(return_value=stream))

        with pytest.raises(ProviderError):
            [f async for f in llm.complete_stream("m", [])]
        assert stream.closed

    async def test_error_opening_stream(self):
        response = httpx.Response(500, request=_REQUEST)
        create = AsyncMock(side_effect=openai.InternalServerError("boom", response=response, body=None))
        llm = _client_with(create)

        with pytest.raises(ProviderError) as exc:
            await llm.complete_stream("m", []).__anext__()
        assert exc.value.status == 500
