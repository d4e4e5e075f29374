"""
Channel infrastructure shared by outbound senders.

Provides:
- ChannelError: structured delivery error (channel, retryable)
- InputSanitizer: strips control characters and caps inbound text length
- MessageSender: abstract outbound sender the HTTP layer delivers replies through
"""
from __future__ import annotations

import abc
import structlog
from typing import Any

from models.schemas import ChannelType

logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class ChannelError(Exception):
    """Base exception for all channel operations."""

    def __init__(self, message: str, channel: str = "", retryable: bool = False):
        self.channel = channel
        self.retryable = retryable
        super().__init__(message)


# ══════════════════════════════════════════════════════════════
#  INPUT SANITIZER
# ══════════════════════════════════════════════════════════════

class InputSanitizer:
    def __init__(self, max_length: int = 4096):
        self.max_length = max_length

    def sanitize(self, content: str) -> str:
        if not content:
            return ""
        content = "".join(
            c for c in content if c in ("\n", "\t", "\r") or (ord(c) >= 32)
        )
        if len(content) > self.max_length:
            content = content[: self.max_length]
        return content.strip()


# ══════════════════════════════════════════════════════════════
#  SENDER — Abstract Base
# ══════════════════════════════════════════════════════════════

class MessageSender(abc.ABC):
    """
    Delivers a reply to a conversation identity on one channel.
    Implementations raise ChannelError when delivery fails.
    """

    channel_type: ChannelType

    @abc.abstractmethod
    async def send(self, to: str, content: str) -> list[dict[str, Any]]:
        """Send content (possibly as several messages); one result dict per message."""
        ...

    async def health_check(self) -> dict[str, Any]:
        return {"channel": self.channel_type.value}

    async def shutdown(self) -> None:
        pass
