"""FastMCP server exposing chat extraction and summarization as tools."""

from __future__ import annotations

import logging
import sys

from bs4 import BeautifulSoup
from mcp.server.fastmcp import FastMCP

from .config import SQLITE_PATH, load_settings
from .errors import ChatRelayError
from .fallback import truncate_content
from .parser import extract
from .platforms import detect
from .renderer import render
from .session import PageSession, dispatch
from .storage import HistoryStore
from .summarizer import Summarizer
from .watcher import RateLimitWatcher

# Logging to stderr only; stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

mcp = FastMCP(
    "chatrelay",
    instructions=(
        "Extract and summarize ChatGPT or Claude conversations from page HTML. "
        "Use extract_conversation to get a transcript, summarize_conversation to get "
        "a summary for continuing in a new session, and check_rate_limit to see "
        "whether a page shows a rate-limit message."
    ),
)

_store: HistoryStore | None = None
_summarizer: Summarizer | None = None


def _get_store() -> HistoryStore:
    global _store
    if _store is None:
        _store = HistoryStore(SQLITE_PATH, max_history=load_settings().max_history)
    return _store


def _get_summarizer() -> Summarizer:
    # Shared across tool calls so overlapping requests for one page coalesce
    global _summarizer
    if _summarizer is None:
        _summarizer = Summarizer()
    return _summarizer


@mcp.tool()
def detect_platform(url: str) -> str:
    """Identify the chat platform of a URL (chatgpt, claude or unknown).

    Args:
        url: Page URL
    """
    return detect(url).value


@mcp.tool()
def extract_conversation(html: str, url: str, format: str = "markdown") -> str:
    """Extract the conversation from a chat page.

    Args:
        html: Full page HTML
        url: URL of the page (decides the platform)
        format: markdown, plain, html or json
    """
    try:
        conversation = extract(html, detect(url), url=url)
    except ChatRelayError as exc:
        return str(exc)

    if not conversation.messages:
        return "No conversation found on this page."
    return render(conversation, format)


@mcp.tool()
async def summarize_conversation(
    html: str,
    url: str,
    smart: bool = True,
    format: str = "markdown",
    save: bool = False,
) -> str:
    """Summarize a chat page so the conversation can continue elsewhere.

    Args:
        html: Full page HTML
        url: URL of the page (decides the platform)
        smart: Structured five-section summary instead of a short condensation
        format: Output format requested from the provider
        save: Store the result in history
    """
    session = PageSession(url, summarizer=_get_summarizer())
    try:
        result, commands = await session.manual_summarize(html, smart=smart, target_format=format)
    except ChatRelayError as exc:
        return str(exc)

    if save:
        dispatch(commands, sink=_get_store())

    footer = f"\n\n---\n*Summarized by: {result.provider}*"
    return result.text + footer


@mcp.tool()
def check_rate_limit(html: str, url: str) -> str:
    """Check page content for rate-limit or usage-limit messages.

    Args:
        html: Page HTML, or just the newly added fragment
        url: URL of the page (decides the platform)
    """
    platform = detect(url)
    soup = BeautifulSoup(html, "html.parser")
    event = RateLimitWatcher(platform, url).feed(list((soup.body or soup).children))

    if event is None:
        return "No rate limit detected."
    return f"Rate limit detected on {event.platform.label}: {truncate_content(event.matched_text, 300)}"


@mcp.tool()
def list_history(limit: int = 10) -> str:
    """List recently saved summaries, newest first.

    Args:
        limit: Maximum number of entries
    """
    entries = _get_store().list_history(limit=limit)
    if not entries:
        return "No saved summaries."

    lines = [f"Saved summaries ({len(entries)}):\n"]
    for e in entries:
        lines.append(
            f"{e['id']}. {e['platform']} via {e['provider']} "
            f"({e['message_count']} msgs, {e['saved_at'][:16]}) {e['url']}"
        )
    return "\n".join(lines)


@mcp.tool()
def get_stats() -> str:
    """Get usage statistics: transfers, summarizations, providers and platforms."""
    stats = _get_store().get_stats()

    lines = [
        "# chatrelay Usage Statistics",
        "",
        f"- **Transfers**: {stats['total_transfers']:,}",
        f"- **Summarizations**: {stats['total_summarizations']:,}",
        f"- **Saved summaries**: {stats['saved_summaries']:,}",
    ]
    for name, count in stats["provider_usage"].items():
        lines.append(f"- **Provider {name}**: {count:,}")
    for name, count in stats["platform_usage"].items():
        lines.append(f"- **Platform {name}**: {count:,}")
    if stats["last_used"]:
        lines.append(f"- **Last used**: {stats['last_used'][:19]}")
    return "\n".join(lines)
