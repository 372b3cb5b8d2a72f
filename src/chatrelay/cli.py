"""CLI interface for chatrelay."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sys

import click
import httpx
from bs4 import BeautifulSoup

from . import __version__
from .config import DATA_DIR, HTTP_TIMEOUT, SQLITE_PATH, load_settings
from .errors import ChatRelayError
from .platforms import detect, is_supported
from .renderer import FORMATS, render

FORMAT_CHOICE = click.Choice(FORMATS)


def _read_page(page) -> str:
    with page:
        return page.read()


def _open_store():
    from .storage import HistoryStore

    return HistoryStore(SQLITE_PATH, max_history=load_settings().max_history)


@click.group()
@click.version_option(version=__version__, prog_name="chatrelay")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool):
    """chatrelay — Carry a ChatGPT or Claude conversation into a new session.

    Save the chat page as HTML, then extract it as a transcript or condense it
    into a summary you can paste into a fresh chat.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command("detect")
@click.argument("url")
def detect_cmd(url: str):
    """Show which chat platform a URL belongs to."""
    click.echo(detect(url).value)


@cli.command()
@click.argument("page", type=click.File("r", encoding="utf-8"))
@click.option("--url", required=True, help="URL the page was saved from")
@click.option("--format", "fmt", type=FORMAT_CHOICE, default="markdown", show_default=True)
@click.option("--output", "-o", type=click.File("w", encoding="utf-8"), default="-")
@click.option("--save", is_flag=True, help="Count this transfer in usage statistics")
def extract(page, url: str, fmt: str, output, save: bool):
    """Extract the conversation from a saved chat PAGE.

    Example:
        chatrelay extract chat.html --url https://chatgpt.com/c/abc --format json
    """
    from .parser import extract as extract_page

    try:
        conversation = extract_page(_read_page(page), detect(url), url=url)
    except ChatRelayError as exc:
        raise click.ClickException(str(exc)) from exc

    if not conversation.messages:
        click.echo("Warning: no messages found on the page.", err=True)

    output.write(render(conversation, fmt))
    output.write("\n")

    if save:
        store = _open_store()
        store.record_usage("transfer", platform=conversation.platform.value)
        store.close()


@cli.command()
@click.argument("page", type=click.File("r", encoding="utf-8"))
@click.option("--url", required=True, help="URL the page was saved from")
@click.option("--smart", is_flag=True, help="Structured five-section summary")
@click.option("--format", "fmt", type=FORMAT_CHOICE, default=None, help="Output format of the summary")
@click.option("--save", is_flag=True, help="Store the summary in history")
def summarize(page, url: str, smart: bool, fmt: str | None, save: bool):
    """Summarize the conversation in a saved chat PAGE.

    Uses the provider chosen by CHATRELAY_PREFERRED_LLM and falls back to a
    local summary if it is not reachable.
    """
    from .session import PageSession, dispatch

    html = _read_page(page)

    async def _summarize():
        session = PageSession(url)
        try:
            return await session.manual_summarize(html, smart=smart, target_format=fmt)
        finally:
            await session.aclose()

    try:
        result, commands = asyncio.run(_summarize())
    except ChatRelayError as exc:
        raise click.ClickException(str(exc)) from exc

    if result.provider == "fallback":
        reason = f" ({result.error})" if result.error else ""
        click.echo(f"Note: AI provider unavailable, used local summary{reason}.", err=True)
    elif result.validated is False:
        click.echo("Note: the provider output may not be a real summary.", err=True)

    click.echo(result.text)

    if save:
        store = _open_store()
        dispatch(commands, sink=store)
        store.close()


@cli.command()
@click.argument("page", type=click.File("r", encoding="utf-8"))
@click.option("--url", required=True, help="URL the page was saved from")
def scan(page, url: str):
    """Check a saved chat PAGE for rate-limit messages."""
    from .fallback import truncate_content
    from .watcher import RateLimitWatcher

    if not is_supported(url):
        raise click.ClickException(f"Unsupported platform for {url}")

    platform = detect(url)
    soup = BeautifulSoup(_read_page(page), "html.parser")
    watcher = RateLimitWatcher(platform, url)
    event = watcher.feed(list((soup.body or soup).children))

    if event is None:
        click.echo("No rate limit indicators found.")
        return

    click.echo(click.style("Rate limit detected!", fg="red", bold=True))
    click.echo(f"  Platform: {event.platform.label}")
    click.echo(f"  Message:  {truncate_content(event.matched_text, 200)}")


@cli.command()
@click.option(
    "--provider",
    type=click.Choice(["ollama", "openai", "anthropic"]),
    default=None,
    help="Provider to test (default: the preferred one)",
)
def check(provider: str | None):
    """Test the connection to an AI provider."""
    from .providers import check_anthropic, check_ollama, check_openai, validate_api_key

    settings = load_settings()
    provider = provider or settings.preferred_llm

    if provider != "ollama":
        key = settings.openai_api_key if provider == "openai" else settings.anthropic_api_key
        valid, error = validate_api_key(key, provider)
        if not valid:
            click.echo(f"Warning: {error}", err=True)

    async def _check():
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            if provider == "ollama":
                return await check_ollama(client, settings.ollama_url, settings.ollama_model)
            if provider == "openai":
                return await check_openai(client, settings.openai_api_key)
            return await check_anthropic(client, settings.anthropic_api_key)

    status = asyncio.run(_check())

    if not status.connected:
        raise click.ClickException(f"{provider}: not connected ({status.error})")

    click.echo(click.style(f"{provider}: connected", fg="green", bold=True))
    if status.model_exists is False:
        click.echo(f"  Model '{settings.ollama_model}' is not installed.")
    if status.models:
        click.echo(f"  Models: {', '.join(status.models[:10])}")


@cli.command()
@click.option("--limit", default=10, show_default=True)
@click.option("--as-json", is_flag=True, help="Dump the full history as JSON")
@click.option("--show", "show_id", type=int, default=None, help="Print one saved summary")
@click.option("--delete", "delete_id", type=int, default=None, help="Delete one saved summary")
def history(limit: int, as_json: bool, show_id: int | None, delete_id: int | None):
    """List saved summaries, newest first."""
    if not SQLITE_PATH.exists():
        click.echo("No history yet. Summarize a page with --save first.")
        return

    store = _open_store()
    if show_id is not None:
        entry = store.get_entry(show_id)
        store.close()
        if entry is None:
            raise click.ClickException(f"No saved summary with id {show_id}")
        conversation = entry["conversation"]
        click.echo(click.style(f"Summary #{entry['id']}", bold=True))
        click.echo(f"  Platform: {conversation.platform.label}")
        click.echo(f"  URL:      {entry['url']}")
        click.echo(f"  Provider: {entry['provider']}")
        click.echo(f"  Messages: {entry['message_count']}")
        click.echo()
        click.echo(entry["summary"])
        return

    if delete_id is not None:
        deleted = store.delete_entry(delete_id)
        store.close()
        if not deleted:
            raise click.ClickException(f"No saved summary with id {delete_id}")
        click.echo(f"Deleted summary {delete_id}")
        return

    if as_json:
        click.echo(json.dumps(store.export_data(), indent=2))
        store.close()
        return

    entries = store.list_history(limit=limit)
    store.close()

    if not entries:
        click.echo("No saved summaries.")
        return

    for e in entries:
        click.echo(
            f"{e['id']:>4}  {e['saved_at'][:16]}  {e['platform']:<8} "
            f"{e['provider']:<10} {e['message_count']} msgs  {e['url']}"
        )


@cli.command()
def stats():
    """Show usage statistics."""
    if not SQLITE_PATH.exists():
        click.echo("No data found. Summarize a page with --save first.")
        return

    store = _open_store()
    s = store.get_stats()
    store.close()

    click.echo()
    click.echo(click.style("chatrelay Usage Statistics", bold=True))
    click.echo(f"  Transfers:       {s['total_transfers']:,}")
    click.echo(f"  Summarizations:  {s['total_summarizations']:,}")
    click.echo(f"  Saved summaries: {s['saved_summaries']:,}")
    if s["provider_usage"]:
        click.echo("  Providers:")
        for name, count in s["provider_usage"].items():
            click.echo(f"    {name}: {count:,}")
    if s["platform_usage"]:
        click.echo("  Platforms:")
        for name, count in s["platform_usage"].items():
            click.echo(f"    {name}: {count:,}")
    if s["last_used"]:
        click.echo(f"  Last used:       {s['last_used'][:19]}")
    click.echo(f"  Location:        {DATA_DIR}")
    click.echo()


@cli.command()
def serve():
    """Start the MCP server (stdio transport)."""
    from .server import mcp

    mcp.run(transport="stdio")


@cli.command()
@click.confirmation_option(prompt="This will delete all saved history. Are you sure?")
def reset():
    """Delete all saved data and start fresh."""
    if DATA_DIR.exists():
        shutil.rmtree(DATA_DIR)
        click.echo(f"Deleted {DATA_DIR}")
    else:
        click.echo("No data to delete.")
