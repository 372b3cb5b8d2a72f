"""Per-page context tying detection, extraction, watching and summarizing together."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable, Iterable
from typing import Protocol

from .config import load_settings
from .errors import EmptyConversationError, StorageError
from .models import Command, Conversation, Platform, RateLimitEvent, Settings, SummaryResult
from .parser import PageModel, extract
from .platforms import detect
from .summarizer import Summarizer
from .watcher import AddedNode, RateLimitWatcher

logger = logging.getLogger(__name__)

BADGE_ALERT = ("!", "#FF4444")
BADGE_DONE = ("✓", "#10B981")
BADGE_CLEAR_AFTER = 3.0


class Notifier(Protocol):
    def notify_rate_limit_detected(self, event: RateLimitEvent) -> None: ...


class ResultSink(Protocol):
    def save_result(self, conversation: Conversation, summary: SummaryResult) -> object: ...


class PageSession:
    """State for one page lifetime.

    Built once per page load; a reload means a new session, which is the
    only way a tripped rate-limit watcher is re-armed.
    """

    def __init__(
        self,
        url: str,
        settings_reader: Callable[[], Settings] = load_settings,
        summarizer: Summarizer | None = None,
    ):
        self.url = url
        self.platform = detect(url)
        self._settings_reader = settings_reader
        self.summarizer = summarizer or Summarizer()

        self.watcher: RateLimitWatcher | None = None
        if self.active and self.get_settings().auto_detect_rate_limit:
            self.watcher = RateLimitWatcher(self.platform, url)

    @property
    def active(self) -> bool:
        return self.platform is not Platform.UNKNOWN

    def get_settings(self) -> Settings:
        """Fresh read-only snapshot; an unavailable store yields defaults."""
        try:
            return self._settings_reader()
        except StorageError:
            logger.warning("Settings unavailable, using defaults", exc_info=True)
            return Settings()

    def extract(self, page: PageModel) -> Conversation:
        return extract(page, self.platform, url=self.url)

    def observe(self, added_nodes: Iterable[AddedNode]) -> list[Command]:
        """Feed one mutation batch to the watcher; commands only on the first match."""
        if self.watcher is None:
            return []

        event = self.watcher.feed(added_nodes)
        if event is None:
            return []

        return [
            Command(kind="notify_rate_limit", data={"event": event}),
            Command(kind="set_badge", data={"text": BADGE_ALERT[0], "color": BADGE_ALERT[1]}),
            Command(kind="show_transfer_button"),
        ]

    async def watch(
        self, batches: AsyncIterable[Iterable[AddedNode]], notifier: Notifier
    ) -> RateLimitEvent | None:
        """Observe a live stream of mutation batches until the first detection."""
        if self.watcher is None:
            return None
        return await self.watcher.watch(batches, notifier.notify_rate_limit_detected)

    async def aclose(self):
        await self.summarizer.aclose()

    async def summarize(
        self,
        source: PageModel | Conversation,
        smart: bool = False,
        target_format: str | None = None,
    ) -> SummaryResult:
        conversation = source if isinstance(source, Conversation) else self.extract(source)
        settings = self.get_settings()
        if smart:
            return await self.summarizer.smart_summarize(conversation, settings, target_format or "markdown")
        return await self.summarizer.summarize(conversation, settings, target_format or "plain")

    async def manual_summarize(
        self, page: PageModel, smart: bool = False, target_format: str | None = None
    ) -> tuple[SummaryResult, list[Command]]:
        """Summarize on user request; raises EmptyConversationError when nothing is on the page."""
        conversation = self.extract(page)
        if not conversation.messages:
            raise EmptyConversationError()

        result = await self.summarize(conversation, smart=smart, target_format=target_format)
        commands = [
            Command(kind="save_result", data={"conversation": conversation, "summary": result}),
            Command(kind="set_badge", data={"text": BADGE_DONE[0], "color": BADGE_DONE[1]}),
            Command(kind="clear_badge", data={"after": BADGE_CLEAR_AFTER}),
        ]
        return result, commands


def dispatch(
    commands: Iterable[Command],
    notifier: Notifier | None = None,
    sink: ResultSink | None = None,
) -> list[Command]:
    """Carry out the commands this process can handle; return the rest."""
    remaining: list[Command] = []

    for command in commands:
        if command.kind == "notify_rate_limit" and notifier is not None:
            notifier.notify_rate_limit_detected(command.data["event"])
        elif command.kind == "save_result" and sink is not None:
            sink.save_result(command.data["conversation"], command.data["summary"])
        else:
            remaining.append(command)

    return remaining
