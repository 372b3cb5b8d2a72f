"""
Shared fixtures for chatrelay tests.

Page fixtures mimic the markup of the supported chat sites closely enough to
exercise every selector tier; HTTP is served by httpx.MockTransport.
"""

from datetime import datetime, timezone
from typing import Callable, List

import httpx
import pytest
from chatrelay.models import Conversation, Message, Platform, Settings

# ===== PAGE FIXTURES =====


@pytest.fixture
def chatgpt_html() -> str:
    return """
    <html><body><main>
      <div data-message-author-role="user">
        <div class="whitespace-pre-wrap">Hi</div>
      </div>
      <div data-message-author-role="assistant">
        <div class="markdown"><p>Hello</p><p>How can I help?</p></div>
      </div>
      <div data-message-author-role="user">
        <div class="whitespace-pre-wrap">Explain X</div>
      </div>
      <div data-message-author-role="assistant">
        <div class="markdown">   </div>
      </div>
    </main></body></html>
    """


@pytest.fixture
def claude_html() -> str:
    return """
    <html><body><main>
      <div data-is-streaming="false">
        <div data-testid="human-turn">Explain X</div>
        <button data-testid="copy-button">Copy</button>
      </div>
      <div data-is-streaming="false">
        <div data-testid="assistant-turn">X is <b>great</b>.</div>
        <span class="timestamp">10:42</span>
      </div>
      <div data-is-streaming="false">
        <div>Unlabelled reply</div>
      </div>
      <div data-is-streaming="false">
        <span class="timestamp">10:43</span>
      </div>
    </main></body></html>
    """


# ===== MODEL FIXTURES =====

FIXED_TIME = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)


@pytest.fixture
def sample_conversation() -> Conversation:
    """The three-turn conversation used across prompt and render tests."""
    return Conversation(
        platform=Platform.CHATGPT,
        url="https://chatgpt.com/c/abc",
        extracted_at=FIXED_TIME,
        messages=[
            Message(role="user", content="Hi", timestamp=FIXED_TIME),
            Message(role="assistant", content="Hello", timestamp=FIXED_TIME),
            Message(role="user", content="Explain X", timestamp=FIXED_TIME),
        ],
    )


@pytest.fixture
def make_conversation() -> Callable[..., Conversation]:
    """Factory for alternating user/assistant conversations of any length."""

    def _make(count: int, platform: Platform = Platform.CLAUDE) -> Conversation:
        messages: List[Message] = [
            Message(
                role="user" if i % 2 == 0 else "assistant",
                content=f"Message number {i}. How do I build feature {i} for the app?"
                if i % 2 == 0
                else f"Answer number {i} with some detail.",
                timestamp=FIXED_TIME,
            )
            for i in range(count)
        ]
        return Conversation(
            platform=platform,
            url="https://claude.ai/chat/xyz",
            extracted_at=FIXED_TIME,
            messages=messages,
        )

    return _make


@pytest.fixture
def ollama_settings() -> Settings:
    return Settings(preferred_llm="ollama", summary_length="short")


# ===== HTTP FIXTURES =====


@pytest.fixture
def mock_client():
    """Build an AsyncClient whose requests are answered by ``handler``.

    Every request seen is appended to ``client.requests``.
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        seen: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        client.requests = seen
        return client

    return _make
