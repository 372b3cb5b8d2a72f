"""Data models for extracted conversations and summarization."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

Role = Literal["user", "assistant"]
ProviderName = Literal["ollama", "openai", "anthropic"]
OutputFormat = Literal["markdown", "plain", "json", "html"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    CHATGPT = "chatgpt"
    CLAUDE = "claude"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        """Display name used in rendered headers."""
        return {"chatgpt": "ChatGPT", "claude": "Claude"}.get(self.value, "Unknown")


class Message(BaseModel):
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=_now)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("message content must not be empty")
        return value


class Conversation(BaseModel):
    """A snapshot of the turns visible on a chat page, in page order."""

    model_config = ConfigDict(populate_by_name=True)

    platform: Platform
    messages: list[Message] = []
    url: str = ""
    extracted_at: datetime = Field(default_factory=_now, alias="extractedAt")

    @computed_field(alias="totalMessages")
    @property
    def total_messages(self) -> int:
        return len(self.messages)


class Settings(BaseModel):
    """Read-only user settings consumed by every operation."""

    model_config = ConfigDict(frozen=True)

    preferred_llm: ProviderName = "ollama"
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama2"
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    # Kept as free text: unrecognized lengths fall back to "medium" downstream.
    summary_length: str = "medium"
    auto_detect_rate_limit: bool = True
    max_history: int = Field(default=50, ge=1)


class RateLimitEvent(BaseModel):
    platform: Platform
    matched_text: str
    url: str
    timestamp: datetime = Field(default_factory=_now)


class SummaryResult(BaseModel):
    text: str
    provider: ProviderName | Literal["fallback"]
    # None when the validator was not consulted (fallback output).
    validated: bool | None = None
    error: str | None = None


class Command(BaseModel):
    """Side effect for the presentation layer to carry out."""

    kind: Literal[
        "notify_rate_limit",
        "set_badge",
        "clear_badge",
        "show_transfer_button",
        "save_result",
    ]
    data: dict[str, Any] = {}
