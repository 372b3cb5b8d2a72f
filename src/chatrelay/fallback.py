"""Provider-free heuristic summaries used when no remote call succeeds."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import Conversation, Message

TOPIC_TRIGGERS = {
    "about", "how", "what", "why", "when", "where",
    "help", "explain", "create", "build", "make",
}
MAX_TOPICS = 5
TOPIC_WORDS = 4
MIN_TOPIC_CHARS = 10

# (max message count, exchanges kept), checked in order; longer keeps 6
EXCHANGE_LIMITS = [(5, 2), (15, 4)]
MAX_EXCHANGES = 6

USER_PREVIEW_CHARS = 150
ASSISTANT_PREVIEW_CHARS = 200
TOPIC_PREVIEW_CHARS = 50


@dataclass
class Exchange:
    topic: str
    user_message: str
    assistant_message: str


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def truncate_content(content: str, max_length: int = 1000) -> str:
    """Shorten text to ``max_length``, preferring to cut at a word boundary."""
    if not content or len(content) <= max_length:
        return content

    truncated = content[: max_length - 3]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


def exchange_limit(message_count: int) -> int:
    for limit, kept in EXCHANGE_LIMITS:
        if message_count <= limit:
            return kept
    return MAX_EXCHANGES


def extract_topics(messages: list[Message]) -> list[str]:
    """Collect short phrases that follow a trigger word in user turns."""
    topics: dict[str, None] = {}

    for msg in messages:
        if msg.role != "user":
            continue
        words = msg.content.lower().split()
        for index, word in enumerate(words[:-1]):
            if word not in TOPIC_TRIGGERS:
                continue
            topic = " ".join(words[index : index + TOPIC_WORDS])
            if len(topic) > MIN_TOPIC_CHARS:
                topics.setdefault(topic)

    return list(topics)[:MAX_TOPICS]


def extract_key_exchanges(messages: list[Message], limit: int) -> list[Exchange]:
    """Return the last ``limit`` user turns that got an immediate answer."""
    exchanges: list[Exchange] = []

    for user_msg, assistant_msg in zip(messages, messages[1:]):
        if user_msg.role != "user" or assistant_msg.role != "assistant":
            continue
        first_sentence = re.split(r"[.!?]", user_msg.content)[0]
        exchanges.append(
            Exchange(
                topic=first_sentence[:TOPIC_PREVIEW_CHARS] + "...",
                user_message=_preview(user_msg.content, USER_PREVIEW_CHARS),
                assistant_message=_preview(assistant_msg.content, ASSISTANT_PREVIEW_CHARS),
            )
        )

    return exchanges[-limit:] if limit else []


def fallback_summary(conversation: Conversation, target_format: str = "markdown") -> str:
    """Summarize locally from keyword topics and recent exchanges.

    Markdown gets headings and bold speakers; every other format gets the
    plain bullet layout.
    """
    messages = conversation.messages
    platform = conversation.platform.label
    topics = extract_topics(messages)
    exchanges = extract_key_exchanges(messages, exchange_limit(len(messages)))

    if target_format == "markdown":
        lines = [f"# Conversation Summary - {platform}", "", "## Key Topics"]
        lines.extend(f"- {topic}" for topic in topics)
        lines.extend(["", "## Key Exchanges"])
        for exchange in exchanges:
            lines.append(f"### {exchange.topic}")
            lines.append(f"**You**: {exchange.user_message}")
            lines.append("")
            lines.append(f"**Assistant**: {exchange.assistant_message}")
            lines.append("")
    else:
        lines = [f"Conversation Summary - {platform}", "", "Key Topics:"]
        lines.extend(f"• {topic}" for topic in topics)
        lines.extend(["", "Key Exchanges:"])
        for exchange in exchanges:
            lines.append("")
            lines.append(f"{exchange.topic}:")
            lines.append(f"You: {exchange.user_message}")
            lines.append(f"Assistant: {exchange.assistant_message}")

    return "\n".join(lines) + "\n"
