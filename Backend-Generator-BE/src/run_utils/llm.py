import logging
from functools import lru_cache
from typing import AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from src import config
from src.utils.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TOP_P = 1


def _to_provider_error(e: openai.APIError) -> ProviderError:
    if isinstance(e, openai.APIStatusError):
        return ProviderError(str(e.message), status=e.status_code)
    return ProviderError(str(e))


class LLMClient:
    """Chat-completion calls against an OpenAI-compatible provider.

    Never retries: a failed call surfaces immediately as ProviderError.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        referer: str = "",
        title: str = "",
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.headers: Dict[str, str] = {}
        if referer:
            self.headers["HTTP-Referer"] = referer
        if title:
            self.headers["X-Title"] = title
        self._client: Optional[AsyncOpenAI] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise ProviderError("OpenRouter API key not configured")
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                default_headers=self.headers,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_p: float = DEFAULT_TOP_P,
    ) -> str:
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
            )
        except openai.APIError as e:
            logger.error("Provider call to %s failed: %s", model, e)
            raise _to_provider_error(e) from e

        usage = getattr(resp, "usage", None)
        if usage:
            logger.debug(
                "%s usage: prompt=%s completion=%s",
                model,
                getattr(usage, "prompt_tokens", 0),
                getattr(usage, "completion_tokens", 0),
            )
        if not resp.choices:
            raise ProviderError(f"No choices returned by {model}")
        return resp.choices[0].message.content or ""

    async def complete_stream(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_p: float = DEFAULT_TOP_P,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        try:
            stream = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
                stream=True,
            )
        except openai.APIError as e:
            logger.error("Provider stream to %s failed: %s", model, e)
            raise _to_provider_error(e) from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.APIError as e:
            logger.error("Provider stream to %s broke off: %s", model, e)
            raise _to_provider_error(e) from e
        finally:
            # runs on consumer disconnect too, releasing the provider connection
            await stream.close()


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient(
        api_key=config.OPENROUTER_API_KEY,
        base_url=config.OPENROUTER_BASE_URL,
        referer=config.OPENROUTER_REFERER,
        title=config.OPENROUTER_TITLE,
    )
