import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from modelmind.utils import openai_client
from modelmind.utils.config import Settings
from modelmind.utils.openai_client import OpenAITextGenerator


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_text_generator_sends_prompt_with_configured_model():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion('{"intent": "GENERATE"}'))
    config = Settings(_env_file=None, openai_model="gpt-test", openai_temperature=0.0)

    result = asyncio.run(OpenAITextGenerator(client=client, config=config).generate("classify this"))

    assert result == '{"intent": "GENERATE"}'
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["temperature"] == 0.0
    assert kwargs["messages"] == [{"role": "user", "content": "classify this"}]


def test_text_generator_returns_empty_string_for_null_content():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion(None))

    assert asyncio.run(OpenAITextGenerator(client=client).generate("x")) == ""


def test_get_openai_client_requires_api_key(monkeypatch):
    monkeypatch.setattr(openai_client.settings, "openai_api_key", "")
    openai_client.get_openai_client.cache_clear()
    with pytest.raises(ValueError):
        openai_client.get_openai_client()
    openai_client.get_openai_client.cache_clear()


def test_close_openai_client_closes_the_shared_client(monkeypatch):
    monkeypatch.setattr(openai_client.settings, "openai_api_key", "sk-test")
    openai_client.get_openai_client.cache_clear()
    client = openai_client.get_openai_client()

    asyncio.run(openai_client.close_openai_client())

    assert client.is_closed()
    assert openai_client.get_openai_client.cache_info().currsize == 0


def test_close_openai_client_without_a_client_is_a_no_op():
    openai_client.get_openai_client.cache_clear()

    asyncio.run(openai_client.close_openai_client())

    assert openai_client.get_openai_client.cache_info().currsize == 0


def test_app_shutdown_closes_the_shared_client(monkeypatch):
    from fastapi.testclient import TestClient

    from modelmind.server import app

    monkeypatch.setattr(openai_client.settings, "openai_api_key", "sk-test")
    openai_client.get_openai_client.cache_clear()
    client = openai_client.get_openai_client()

    with TestClient(app) as http:
        assert http.get("/health").status_code == 200

    assert client.is_closed()
