"""Summarization orchestrator: one provider call, local fallback on any failure."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Callable

import httpx

from .config import HTTP_TIMEOUT
from .errors import ProviderError
from .fallback import fallback_summary
from .models import Conversation, Settings, SummaryResult
from .prompts import build_smart_summary_prompt, build_summary_prompt
from .providers import select_provider
from .renderer import render

logger = logging.getLogger(__name__)

SUMMARY_INDICATORS = (
    "core objective",
    "key topics",
    "main goals",
    "summary",
    "progress made",
    "next steps",
    "decisions",
    "important points",
    "context for continuation",
)
MAX_SIMILARITY = 0.8


def word_overlap(text: str, original: str) -> float:
    """Share of words in ``text`` that also occur in ``original``."""
    words = text.lower().split()
    original_words = original.lower().split()
    longest = max(len(words), len(original_words))
    if not longest:
        return 0.0
    vocabulary = set(original_words)
    return sum(1 for w in words if w in vocabulary) / longest


def validate_summary(summary: str, original_formatted: str) -> bool:
    """True when ``summary`` reads like a summary rather than an echo of the chat."""
    lowered = summary.lower()
    has_indicators = any(indicator in lowered for indicator in SUMMARY_INDICATORS)
    similarity = word_overlap(summary, original_formatted)
    logger.debug(
        "Summary validation: indicators=%s similarity=%.2f", has_indicators, similarity
    )
    return has_indicators and similarity < MAX_SIMILARITY


def snapshot_key(conversation: Conversation, settings: Settings, target_format: str) -> str:
    """Identify a conversation snapshot independent of when it was captured."""
    payload = {
        "platform": conversation.platform.value,
        "url": conversation.url,
        "messages": [[m.role, m.content] for m in conversation.messages],
        "format": target_format,
        "settings": settings.model_dump(),
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()


class Summarizer:
    """Turns conversations into summaries using the configured provider.

    Every public method returns a SummaryResult; provider failures are
    logged and replaced with the local fallback summary.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = HTTP_TIMEOUT):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._inflight: dict[str, asyncio.Future[SummaryResult]] = {}

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> Summarizer:
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def summarize(
        self, conversation: Conversation, settings: Settings, target_format: str = "plain"
    ) -> SummaryResult:
        """Basic length-driven summary."""
        return await self._run(
            conversation,
            settings,
            lambda: build_summary_prompt(conversation, settings.summary_length),
            target_format,
            validate=False,
        )

    async def smart_summarize(
        self, conversation: Conversation, settings: Settings, target_format: str = "markdown"
    ) -> SummaryResult:
        """Structured summary; concurrent calls for one snapshot share a single request."""
        key = snapshot_key(conversation, settings, target_format)
        future = self._inflight.get(key)

        if future is None:
            future = asyncio.ensure_future(
                self._run(
                    conversation,
                    settings,
                    lambda: build_smart_summary_prompt(conversation, target_format),
                    target_format,
                    validate=True,
                )
            )
            self._inflight[key] = future
            future.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            logger.debug("Joining in-flight smart summary %s", key[:12])

        # A caller giving up must not cancel the request for the others.
        return await asyncio.shield(future)

    async def _run(
        self,
        conversation: Conversation,
        settings: Settings,
        build_prompt: Callable[[], str],
        target_format: str,
        validate: bool,
    ) -> SummaryResult:
        try:
            provider = select_provider(settings, self.client)
            if provider is None:
                logger.info("No AI provider configured, using fallback summary")
                return self._fallback(conversation, target_format)

            logger.info("Summarizing %d messages with %s", conversation.total_messages, provider.name)
            text = await provider.complete(build_prompt(), settings)

            validated = None
            if validate:
                validated = validate_summary(text, render(conversation, target_format))
                logger.info("%s summary validated as genuine summary: %s", provider.name, validated)

            return SummaryResult(text=text, provider=provider.name, validated=validated)
        except (ProviderError, httpx.HTTPError) as exc:
            logger.warning("AI summarization failed, using fallback: %s", exc, exc_info=True)
            return self._fallback(conversation, target_format, error=str(exc))
        except Exception as exc:
            logger.warning("Unexpected summarization failure", exc_info=True)
            return self._fallback(conversation, target_format, error=str(exc))

    @staticmethod
    def _fallback(conversation: Conversation, target_format: str, error: str | None = None) -> SummaryResult:
        return SummaryResult(
            text=fallback_summary(conversation, target_format),
            provider="fallback",
            error=error,
        )
