"""Exceptions raised across chatrelay."""

from __future__ import annotations


class ChatRelayError(Exception):
    """Base class for errors a caller is expected to handle."""


class UnsupportedPlatformError(ChatRelayError):
    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}")


class EmptyConversationError(ChatRelayError):
    def __init__(self, message: str = "No conversation found to summarize"):
        super().__init__(message)


class ProviderError(ChatRelayError):
    """A remote summarization call failed or returned nothing usable."""

    def __init__(self, provider: str, status: int | None, body: str = ""):
        self.provider = provider
        self.status = status
        self.body = body
        detail = f"{status} - {body}" if status is not None else body
        super().__init__(f"{provider} API error: {detail}")


class StorageError(ChatRelayError):
    pass
