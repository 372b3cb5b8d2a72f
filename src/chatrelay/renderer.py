"""Render conversations as markdown, plain text, HTML or JSON."""

from __future__ import annotations

import html
import logging
from datetime import datetime

from .config import GENERATOR_NAME
from .models import Conversation, Message

logger = logging.getLogger(__name__)

FORMATS = ("markdown", "plain", "json", "html")

_HTML_STYLE = """    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      line-height: 1.6;
      max-width: 800px;
      margin: 0 auto;
      padding: 20px;
      background: #000;
      color: #fff;
    }
    .header {
      text-align: center;
      margin-bottom: 30px;
      padding: 20px;
      background: rgba(255, 255, 255, 0.1);
      border-radius: 10px;
    }
    .message {
      margin: 20px 0;
      padding: 15px;
      border-radius: 10px;
    }
    .user {
      background: rgba(255, 255, 255, 0.1);
      border-left: 4px solid #fff;
    }
    .assistant {
      background: rgba(255, 255, 255, 0.05);
      border-left: 4px solid #666;
    }
    .role { font-weight: bold; margin-bottom: 8px; opacity: 0.8; }
    .content { white-space: pre-wrap; }
    .footer { text-align: center; margin-top: 30px; opacity: 0.6; }"""


def _format_ts(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M")


def _speaker(msg: Message) -> str:
    return "You" if msg.role == "user" else "Assistant"


def render_markdown(conversation: Conversation) -> str:
    parts = [
        f"# Conversation Context ({conversation.platform.label})\n\n",
        f"*Extracted: {_format_ts(conversation.extracted_at)}*\n\n",
        "---\n\n",
    ]
    blocks = [f"**{_speaker(m)}**:\n{m.content}\n\n" for m in conversation.messages]
    parts.append("---\n\n".join(blocks))
    parts.append(f"\n*Generated by {GENERATOR_NAME}*")
    return "".join(parts)


def render_plain(conversation: Conversation) -> str:
    parts = [
        f"Conversation Context ({conversation.platform.label})\n",
        f"Extracted: {_format_ts(conversation.extracted_at)}\n\n",
        "=" * 50 + "\n\n",
    ]
    blocks = [f"{_speaker(m)}: {m.content}\n\n" for m in conversation.messages]
    parts.append(("-" * 30 + "\n\n").join(blocks))
    parts.append(f"\nGenerated by {GENERATOR_NAME}")
    return "".join(parts)


def render_html(conversation: Conversation) -> str:
    """Standalone HTML page; all message text is escaped."""
    platform = html.escape(conversation.platform.label)
    extracted = _format_ts(conversation.extracted_at)

    messages = "".join(
        f"""
  <div class="message {m.role}">
    <div class="role">{_speaker(m)}</div>
    <div class="content">{html.escape(m.content)}</div>
  </div>"""
        for m in conversation.messages
    )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Conversation Context - {platform}</title>
  <style>
{_HTML_STYLE}
  </style>
</head>
<body>
  <div class="header">
    <h1>Conversation Context - {platform}</h1>
    <p>Extracted: {extracted}</p>
  </div>
{messages}
  <div class="footer">
    <p>Generated by {GENERATOR_NAME}</p>
  </div>
</body>
</html>"""


def render_json(conversation: Conversation) -> str:
    return conversation.model_dump_json(by_alias=True, indent=2)


def parse_json(text: str | bytes) -> Conversation:
    """Inverse of render_json."""
    return Conversation.model_validate_json(text)


_RENDERERS = {
    "markdown": render_markdown,
    "plain": render_plain,
    "json": render_json,
    "html": render_html,
}


def render(conversation: Conversation, fmt: str = "markdown") -> str:
    renderer = _RENDERERS.get(fmt)
    if renderer is None:
        logger.warning("Unknown format %r, rendering as markdown", fmt)
        renderer = render_markdown
    return renderer(conversation)
