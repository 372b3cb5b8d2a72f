"""HTTP clients for the remote summarization providers."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel

from .config import (
    ANTHROPIC_MESSAGES_URL,
    ANTHROPIC_MODEL,
    ANTHROPIC_VERSION,
    OPENAI_CHAT_URL,
    OPENAI_MODEL,
    OPENAI_MODELS_URL,
)
from .errors import ProviderError
from .models import ProviderName, Settings
from .prompts import max_tokens_for

logger = logging.getLogger(__name__)


class Provider(ABC):
    """One remote LLM endpoint that turns a prompt into text."""

    name: ProviderName

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def is_configured(self, settings: Settings) -> bool:
        return True

    @abstractmethod
    async def generate_response(self, prompt: str, settings: Settings) -> httpx.Response:
        """Issue the provider request for ``prompt``."""

    @abstractmethod
    def extract_content(self, data: Any) -> str:
        """Pull the generated text out of the decoded response body."""

    async def complete(self, prompt: str, settings: Settings) -> str:
        """Send one request and return its text.

        Raises ProviderError on a non-success status, an undecodable body,
        or a body that carries no text.
        """
        response = await self.generate_response(prompt, settings)
        if not response.is_success:
            raise ProviderError(self.name, response.status_code, response.text)

        try:
            content = self.extract_content(response.json())
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ProviderError(self.name, response.status_code, f"malformed response: {exc}") from exc

        if not isinstance(content, str) or not content.strip():
            raise ProviderError(self.name, response.status_code, f"{self.name} returned empty response")

        return content


class OllamaProvider(Provider):
    name = "ollama"

    async def generate_response(self, prompt, settings):
        logger.debug("Calling Ollama at %s with model %s", settings.ollama_url, settings.ollama_model)
        return await self.client.post(
            f"{settings.ollama_url.rstrip('/')}/api/generate",
            json={"model": settings.ollama_model, "prompt": prompt, "stream": False},
        )

    def extract_content(self, data):
        return data.get("response") or ""


class OpenAIProvider(Provider):
    name = "openai"

    def is_configured(self, settings):
        return bool(settings.openai_api_key)

    async def generate_response(self, prompt, settings):
        return await self.client.post(
            OPENAI_CHAT_URL,
            headers={"Authorization": f"Bearer {settings.openai_api_key}"},
            json={
                "model": OPENAI_MODEL,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens_for(settings.summary_length),
            },
        )

    def extract_content(self, data):
        return data["choices"][0]["message"]["content"]


class AnthropicProvider(Provider):
    name = "anthropic"

    def is_configured(self, settings):
        return bool(settings.anthropic_api_key)

    async def generate_response(self, prompt, settings):
        return await self.client.post(
            ANTHROPIC_MESSAGES_URL,
            headers={
                "x-api-key": settings.anthropic_api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            json={
                "model": ANTHROPIC_MODEL,
                "max_tokens": max_tokens_for(settings.summary_length),
                "messages": [{"role": "user", "content": prompt}],
            },
        )

    def extract_content(self, data):
        return data["content"][0]["text"]


PROVIDERS: dict[str, type[Provider]] = {
    "ollama": OllamaProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def select_provider(settings: Settings, client: httpx.AsyncClient) -> Provider | None:
    """Return the preferred provider if it can be called, else None."""
    provider_cls = PROVIDERS.get(settings.preferred_llm)
    if provider_cls is None:
        return None
    provider = provider_cls(client)
    return provider if provider.is_configured(settings) else None


# --- Connection checks ---


class ConnectionStatus(BaseModel):
    connected: bool
    error: str | None = None
    models: list[str] = []
    model_exists: bool | None = None


def _status_error(response: httpx.Response) -> str:
    if response.status_code == 401:
        return "Invalid API key"
    return f"HTTP {response.status_code}"


async def check_ollama(client: httpx.AsyncClient, url: str, model: str) -> ConnectionStatus:
    try:
        response = await client.get(f"{url.rstrip('/')}/api/tags")
        if not response.is_success:
            return ConnectionStatus(connected=False, error=_status_error(response))
        names = [m.get("name", "") for m in response.json().get("models") or []]
    except (httpx.HTTPError, ValueError, AttributeError, TypeError) as exc:
        return ConnectionStatus(connected=False, error=str(exc))

    return ConnectionStatus(
        connected=True,
        models=names,
        model_exists=any(model in name for name in names),
    )


async def check_openai(client: httpx.AsyncClient, api_key: str) -> ConnectionStatus:
    try:
        response = await client.get(
            OPENAI_MODELS_URL, headers={"Authorization": f"Bearer {api_key}"}
        )
        if not response.is_success:
            return ConnectionStatus(connected=False, error=_status_error(response))
        names = [m.get("id", "") for m in response.json().get("data") or []]
    except (httpx.HTTPError, ValueError, AttributeError, TypeError) as exc:
        return ConnectionStatus(connected=False, error=str(exc))

    return ConnectionStatus(connected=True, models=names)


async def check_anthropic(client: httpx.AsyncClient, api_key: str) -> ConnectionStatus:
    try:
        response = await client.post(
            ANTHROPIC_MESSAGES_URL,
            headers={"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION},
            json={
                "model": ANTHROPIC_MODEL,
                "max_tokens": 1,
                "messages": [{"role": "user", "content": "test"}],
            },
        )
    except httpx.HTTPError as exc:
        return ConnectionStatus(connected=False, error=str(exc))

    if not response.is_success:
        return ConnectionStatus(connected=False, error=_status_error(response))
    return ConnectionStatus(connected=True, models=[ANTHROPIC_MODEL])


_KEY_PATTERNS = {
    "openai": (re.compile(r"^sk-[A-Za-z0-9]{48}$"), "Invalid OpenAI API key format"),
    "anthropic": (re.compile(r"^sk-ant-[A-Za-z0-9\-_]{95}$"), "Invalid Anthropic API key format"),
}


def validate_api_key(api_key: str | None, provider: str) -> tuple[bool, str | None]:
    """Check a key's shape before it is ever sent anywhere."""
    if not api_key or not isinstance(api_key, str):
        return False, "API key is required"

    pattern = _KEY_PATTERNS.get(provider)
    if pattern and not pattern[0].match(api_key):
        return False, pattern[1]
    return True, None
