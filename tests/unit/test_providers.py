"""Tests for the provider HTTP contracts."""

import json

import httpx
import pytest
from chatrelay.errors import ProviderError
from chatrelay.models import Settings
from chatrelay.providers import (
    AnthropicProvider,
    OllamaProvider,
    OpenAIProvider,
    check_anthropic,
    check_ollama,
    check_openai,
    select_provider,
    validate_api_key,
)


def _json_handler(payload, status=200):
    return lambda request: httpx.Response(status, json=payload)


class TestOllama:
    async def test_request_contract(self, mock_client):
        client = mock_client(_json_handler({"response": "A summary"}))
        settings = Settings(ollama_url="http://localhost:11434", ollama_model="llama3")

        text = await OllamaProvider(client).complete("PROMPT", settings)

        assert text == "A summary"
        request = client.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://localhost:11434/api/generate"
        assert json.loads(request.content) == {
            "model": "llama3",
            "prompt": "PROMPT",
            "stream": False,
        }

    @pytest.mark.parametrize("payload", [{"response": ""}, {"response": "   "}, {}])
    async def test_empty_response_is_an_error(self, mock_client, payload):
        client = mock_client(_json_handler(payload))
        with pytest.raises(ProviderError) as exc_info:
            await OllamaProvider(client).complete("PROMPT", Settings())
        assert exc_info.value.provider == "ollama"

    async def test_http_error_status(self, mock_client):
        client = mock_client(lambda request: httpx.Response(500, text="model not found"))

        with pytest.raises(ProviderError) as exc_info:
            await OllamaProvider(client).complete("PROMPT", Settings())

        assert exc_info.value.status == 500
        assert exc_info.value.body == "model not found"

    async def test_non_json_body(self, mock_client):
        client = mock_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(ProviderError):
            await OllamaProvider(client).complete("PROMPT", Settings())


class TestOpenAI:
    async def test_request_contract(self, mock_client):
        client = mock_client(
            _json_handler({"choices": [{"message": {"content": "Short summary"}}]})
        )
        settings = Settings(preferred_llm="openai", openai_api_key="sk-test", summary_length="short")

        text = await OpenAIProvider(client).complete("PROMPT", settings)

        assert text == "Short summary"
        request = client.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert json.loads(request.content) == {
            "model": "gpt-3.5-turbo",
            "messages": [{"role": "user", "content": "PROMPT"}],
            "max_tokens": 150,
        }

    async def test_missing_choices(self, mock_client):
        client = mock_client(_json_handler({"choices": []}))
        with pytest.raises(ProviderError):
            await OpenAIProvider(client).complete("PROMPT", Settings(openai_api_key="k"))


class TestAnthropic:
    async def test_request_contract(self, mock_client):
        client = mock_client(_json_handler({"content": [{"type": "text", "text": "Claude summary"}]}))
        settings = Settings(anthropic_api_key="sk-ant-test", summary_length="long")

        text = await AnthropicProvider(client).complete("PROMPT", settings)

        assert text == "Claude summary"
        request = client.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert json.loads(request.content) == {
            "model": "claude-3-haiku-20240307",
            "max_tokens": 500,
            "messages": [{"role": "user", "content": "PROMPT"}],
        }

    async def test_unauthorized(self, mock_client):
        client = mock_client(lambda request: httpx.Response(401, json={"error": "bad key"}))
        with pytest.raises(ProviderError) as exc_info:
            await AnthropicProvider(client).complete("PROMPT", Settings(anthropic_api_key="k"))
        assert exc_info.value.status == 401


class TestSelectProvider:
    def test_ollama_needs_no_key(self, mock_client):
        provider = select_provider(Settings(preferred_llm="ollama"), mock_client(_json_handler({})))
        assert isinstance(provider, OllamaProvider)

    def test_keyed_providers(self, mock_client):
        client = mock_client(_json_handler({}))
        assert select_provider(Settings(preferred_llm="openai"), client) is None
        assert select_provider(Settings(preferred_llm="anthropic"), client) is None
        assert isinstance(
            select_provider(Settings(preferred_llm="openai", openai_api_key="k"), client),
            OpenAIProvider,
        )
        assert isinstance(
            select_provider(Settings(preferred_llm="anthropic", anthropic_api_key="k"), client),
            AnthropicProvider,
        )

    def test_key_for_other_provider_is_ignored(self, mock_client):
        settings = Settings(preferred_llm="openai", anthropic_api_key="k")
        assert select_provider(settings, mock_client(_json_handler({}))) is None


class TestConnectionChecks:
    async def test_ollama_tags(self, mock_client):
        client = mock_client(
            _json_handler({"models": [{"name": "llama2:latest"}, {"name": "mistral:7b"}]})
        )
        status = await check_ollama(client, "http://localhost:11434/", "llama2")

        assert status.connected
        assert status.model_exists is True
        assert status.models == ["llama2:latest", "mistral:7b"]
        assert str(client.requests[0].url) == "http://localhost:11434/api/tags"

    async def test_ollama_unreachable(self, mock_client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        status = await check_ollama(mock_client(refuse), "http://localhost:11434", "llama2")
        assert not status.connected
        assert "connection refused" in status.error

    @pytest.mark.parametrize(
        "payload",
        [{"models": ["llama2:latest"]}, {"models": "llama2"}, {"models": {"a": 1}}, ["llama2"]],
    )
    async def test_ollama_unexpected_tags_body(self, mock_client, payload):
        status = await check_ollama(mock_client(_json_handler(payload)), "http://localhost:11434", "llama2")

        assert not status.connected
        assert status.error

    async def test_openai_unexpected_models_body(self, mock_client):
        status = await check_openai(mock_client(_json_handler({"data": [42]})), "sk-good")
        assert not status.connected

    async def test_openai_invalid_key(self, mock_client):
        client = mock_client(lambda request: httpx.Response(401))
        status = await check_openai(client, "sk-bad")
        assert not status.connected
        assert status.error == "Invalid API key"

    async def test_openai_models(self, mock_client):
        client = mock_client(_json_handler({"data": [{"id": "gpt-4o"}]}))
        status = await check_openai(client, "sk-good")
        assert status.connected
        assert status.models == ["gpt-4o"]

    async def test_anthropic_probe(self, mock_client):
        client = mock_client(_json_handler({"content": [{"text": "."}]}))
        status = await check_anthropic(client, "sk-ant-good")

        assert status.connected
        assert json.loads(client.requests[0].content)["max_tokens"] == 1

    async def test_anthropic_server_error(self, mock_client):
        client = mock_client(lambda request: httpx.Response(529))
        status = await check_anthropic(client, "sk-ant-good")
        assert status.error == "HTTP 529"


class TestValidateApiKey:
    def test_missing(self):
        assert validate_api_key("", "openai") == (False, "API key is required")
        assert validate_api_key(None, "anthropic") == (False, "API key is required")

    def test_openai_format(self):
        assert validate_api_key("sk-" + "a" * 48, "openai") == (True, None)
        assert validate_api_key("sk-short", "openai") == (False, "Invalid OpenAI API key format")

    def test_anthropic_format(self):
        assert validate_api_key("sk-ant-" + "a-_1" * 23 + "abc", "anthropic") == (True, None)
        assert validate_api_key("sk-" + "a" * 48, "anthropic")[0] is False

    def test_ollama_takes_anything(self):
        assert validate_api_key("whatever", "ollama") == (True, None)
