"""Detect provider rate limiting from batches of newly added page nodes."""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from enum import Enum

from bs4 import Tag

from .models import Platform, RateLimitEvent

logger = logging.getLogger(__name__)

INDICATORS: dict[Platform, tuple[str, ...]] = {
    Platform.CHATGPT: (
        "too many requests",
        "rate limit",
        "please try again later",
        "quota exceeded",
        "temporarily unavailable",
        "you have reached your",
        "usage limit",
    ),
    Platform.CLAUDE: (
        "rate limit",
        "too many messages",
        "please wait",
        "quota exceeded",
        "usage limit",
        "try again in",
        "temporarily unavailable",
    ),
}

AddedNode = Tag | str
Notifier = Callable[[RateLimitEvent], Awaitable[None] | None]


class WatcherState(str, Enum):
    ARMED = "armed"
    TRIPPED = "tripped"


class RateLimitWatcher:
    """One-shot latch over a stream of added-node batches.

    Only the nodes in each batch are scanned, never the whole document.
    After the first match the watcher stays TRIPPED for its lifetime.
    """

    def __init__(self, platform: Platform, url: str = ""):
        self.platform = platform
        self.url = url
        self.indicators = INDICATORS.get(platform, ())
        self.state = WatcherState.ARMED
        self.event: RateLimitEvent | None = None

    @property
    def tripped(self) -> bool:
        return self.state is WatcherState.TRIPPED

    def _match(self, text: str) -> bool:
        lowered = text.lower()
        return any(indicator in lowered for indicator in self.indicators)

    def feed(self, added_nodes: Iterable[AddedNode]) -> RateLimitEvent | None:
        """Scan one mutation batch; return an event only on the tripping batch."""
        if self.tripped:
            return None

        for node in added_nodes:
            text = node.get_text() if isinstance(node, Tag) else str(node)
            if self._match(text):
                self.state = WatcherState.TRIPPED
                self.event = RateLimitEvent(
                    platform=self.platform,
                    matched_text=text.strip(),
                    url=self.url,
                )
                logger.info("Rate limit detected on %s", self.platform.label)
                return self.event

        return None

    async def watch(
        self,
        batches: AsyncIterable[Iterable[AddedNode]],
        notify: Notifier | None = None,
    ) -> RateLimitEvent | None:
        """Consume batches until the watcher trips or the stream ends."""
        async for batch in batches:
            event = self.feed(batch)
            if event is None:
                continue
            if notify is not None:
                result = notify(event)
                if inspect.isawaitable(result):
                    await result
            return event
        return None
