"""Classify chat page URLs by platform."""

from __future__ import annotations

from urllib.parse import urlsplit

from .models import Platform

# Evaluated in order; the first platform with a matching pattern wins.
PLATFORM_PATTERNS: list[tuple[Platform, tuple[str, ...]]] = [
    (
        Platform.CHATGPT,
        (
            "chat.openai.com",
            "chatgpt.com",
            "openai.com/chat",
            "beta.openai.com",
            "platform.openai.com",
        ),
    ),
    (
        Platform.CLAUDE,
        (
            "claude.ai",
            "console.anthropic.com",
            "beta.claude.ai",
            "app.claude.ai",
        ),
    ),
]

# Secondary rule: host ends with the domain and the URL mentions a keyword.
FALLBACK_RULES: list[tuple[Platform, str, tuple[str, ...]]] = [
    (Platform.CHATGPT, "openai.com", ("chat", "gpt")),
    (Platform.CLAUDE, "anthropic.com", ("claude",)),
]


def detect(url: str | None) -> Platform:
    """Return the platform a URL belongs to, or Platform.UNKNOWN."""
    if not url:
        return Platform.UNKNOWN

    try:
        hostname = (urlsplit(url).hostname or "").lower()
    except ValueError:
        # Unparseable netloc, e.g. an unclosed IPv6 bracket
        hostname = ""

    for platform, patterns in PLATFORM_PATTERNS:
        if any(p in url or p in hostname for p in patterns):
            return platform

    for platform, domain, keywords in FALLBACK_RULES:
        if hostname.endswith(domain) and any(k in url for k in keywords):
            return platform

    return Platform.UNKNOWN


def is_supported(url: str | None) -> bool:
    return detect(url) is not Platform.UNKNOWN
