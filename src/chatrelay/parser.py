"""Extract conversation turns from ChatGPT and Claude page markup."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .errors import UnsupportedPlatformError
from .models import Conversation, Message, Platform, Role

logger = logging.getLogger(__name__)

PageModel = str | BeautifulSoup | Tag

# Tags that start a new line in rendered text
_BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "br", "dd", "div", "dl",
    "dt", "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5",
    "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
    "table", "tr", "ul",
}
_INVISIBLE_TAGS = {"script", "style", "template", "noscript"}


def _rendered_text(element: Tag) -> str:
    """Approximate a browser's innerText: block tags break lines, blank lines drop."""
    parts: list[str] = []
    for node in element.descendants:
        if isinstance(node, NavigableString):
            if isinstance(node, PreformattedString):
                continue
            if node.parent is not None and node.parent.name in _INVISIBLE_TAGS:
                continue
            parts.append(str(node))
        elif isinstance(node, Tag) and node.name in _BLOCK_TAGS:
            parts.append("\n")

    lines = (" ".join(line.split()) for line in "".join(parts).splitlines())
    return "\n".join(line for line in lines if line)


def _has_class(element: Tag, name: str) -> bool:
    return name in (element.get("class") or [])


def _chatgpt_role(element: Tag) -> Role:
    role_attr = element.get("data-message-author-role")
    if role_attr:
        return "user" if role_attr == "user" else "assistant"

    if element.select_one('[data-testid="user-message"]') or _has_class(element, "user"):
        return "user"

    if "You:" in element.get_text():
        return "user"

    return "assistant"


def _claude_role(element: Tag) -> Role:
    test_id = element.get("data-testid") or ""
    if test_id == "human-turn":
        return "user"
    if test_id == "assistant-turn":
        return "assistant"

    if element.select_one('[data-testid="human-turn"], .human'):
        return "user"
    if element.select_one('[data-testid="assistant-turn"], .assistant'):
        return "assistant"

    text = element.get_text()
    if "Human:" in text:
        return "user"
    if "Assistant:" in text:
        return "assistant"

    # Unclassifiable turns are attributed to the assistant.
    return "assistant"


@dataclass(frozen=True)
class PlatformAdapter:
    """How to find turns, attribute them and pull their text on one platform."""

    message_selectors: tuple[str, ...]
    determine_role: Callable[[Tag], Role]
    content_selectors: tuple[str, ...] = ()
    strip_selectors: tuple[str, ...] = ()


ADAPTERS: dict[Platform, PlatformAdapter] = {
    Platform.CHATGPT: PlatformAdapter(
        message_selectors=(
            "[data-message-author-role]",
            '[data-testid^="conversation-turn"]',
            ".group.w-full",
        ),
        determine_role=_chatgpt_role,
        content_selectors=(
            ".markdown",
            "[data-message-content]",
            ".whitespace-pre-wrap",
            ".prose",
        ),
    ),
    Platform.CLAUDE: PlatformAdapter(
        message_selectors=(
            '[data-is-streaming="false"]',
            '[data-testid*="turn"]',
            ".font-claude-message",
        ),
        determine_role=_claude_role,
        strip_selectors=(
            '[data-testid="copy-button"]',
            ".copy-button",
            ".timestamp",
            ".metadata",
        ),
    ),
}


def _extract_content(element: Tag, adapter: PlatformAdapter) -> str:
    """Pull message text, preferring the first inner content region found."""
    if adapter.strip_selectors:
        element = copy.copy(element)
        for selector in adapter.strip_selectors:
            for junk in element.select(selector):
                junk.decompose()

    for selector in adapter.content_selectors:
        region = element.select_one(selector)
        if region is not None:
            return _rendered_text(region)

    return _rendered_text(element)


def _find_turns(root: BeautifulSoup | Tag, adapter: PlatformAdapter) -> list[Tag]:
    """Return nodes from the first selector tier that matches anything."""
    for selector in adapter.message_selectors:
        elements = root.select(selector)
        if elements:
            logger.debug("Matched %d turns with selector %r", len(elements), selector)
            return elements
    return []


def _coerce_platform(platform: Platform | str) -> Platform:
    try:
        return Platform(platform)
    except ValueError:
        return Platform.UNKNOWN


def extract(page: PageModel, platform: Platform | str, url: str = "") -> Conversation:
    """Snapshot the conversation currently present in ``page``.

    ``page`` is raw HTML or an already parsed document. Turns with no text
    are skipped. Raises UnsupportedPlatformError for Platform.UNKNOWN.
    """
    platform = _coerce_platform(platform)
    adapter = ADAPTERS.get(platform)
    if adapter is None:
        raise UnsupportedPlatformError(platform.value)

    root = BeautifulSoup(page, "html.parser") if isinstance(page, str) else page
    captured_at = datetime.now(timezone.utc)
    messages: list[Message] = []

    for element in _find_turns(root, adapter):
        content = _extract_content(element, adapter)
        if not content:
            continue

        role = adapter.determine_role(element)
        messages.append(Message(role=role, content=content, timestamp=captured_at))

    if not messages:
        logger.debug("No extractable messages on %s page %s", platform.label, url)

    return Conversation(
        platform=platform,
        messages=messages,
        url=url,
        extracted_at=captured_at,
    )
