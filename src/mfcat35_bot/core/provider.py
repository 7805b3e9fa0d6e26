"""Message provider abstraction.

Providers deliver replies to a chat platform and expose the lookups the chat
pipeline needs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .logger import get_logger


@dataclass
class SendResult:
    """Result of a message send operation."""

    success: bool
    message_id: str | None = None
    error: str | None = None
    raw_response: dict[str, Any] | None = None

    @classmethod
    def ok(cls, message_id: str, raw_response: dict[str, Any] | None = None) -> SendResult:
        return cls(success=True, message_id=message_id, raw_response=raw_response)

    @classmethod
    def fail(cls, error: str, raw_response: dict[str, Any] | None = None) -> SendResult:
        return cls(success=False, error=error, raw_response=raw_response)


class BaseProvider(ABC):
    """Abstract base class for asynchronous message providers."""

    provider_type: str = "base"

    def __init__(self, name: str):
        self._name = name
        self.logger = get_logger(f"provider.{self.provider_type}.{name}")
        self._connected = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def self_name(self) -> str | None:
        """Display name of the bot account, when known."""
        return None

    async def __aenter__(self) -> BaseProvider:
        await self.async_connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.async_disconnect()

    @abstractmethod
    async def async_connect(self) -> None:
        pass

    @abstractmethod
    async def async_disconnect(self) -> None:
        pass

    @abstractmethod
    async def async_send_text(self, text: str, target: str) -> SendResult:
        """Send a text reply.

        Args:
            text: Reply text in escaped markup form
            target: Target in format "private:ID" or "group:ID"
        """
