"""OpenAI client utilities and the text-generation capability built on them."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Protocol

import httpx
from openai import AsyncOpenAI

from modelmind.utils.config import Settings, settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Anything that turns a prompt into raw model text."""

    async def generate(self, prompt: str) -> str:
        ...


def _build_httpx_client() -> httpx.AsyncClient:
    """Create an async httpx client with explicit timeouts and pool limits."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=10.0, read=120.0, write=120.0, pool=120.0),
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        follow_redirects=True,
    )


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    """Return a shared async OpenAI client wired to the httpx client."""
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY is not set")
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        http_client=_build_httpx_client(),
    )


async def close_openai_client() -> None:
    """Close the shared client, and the httpx pool under it, if one was built."""
    if get_openai_client.cache_info().currsize == 0:
        return
    client = get_openai_client()
    get_openai_client.cache_clear()
    await client.close()
    logger.info("OpenAI client closed")


class OpenAITextGenerator:
    """Chat-completions backed ``TextGenerator``."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._client = client
        self._config = config or settings

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    async def generate(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self._config.openai_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self._config.openai_temperature,
        )
        content = response.choices[0].message.content or ""
        logger.debug("Model returned %d characters", len(content), extra={"model": self._config.openai_model})
        return content
