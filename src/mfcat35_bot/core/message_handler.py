"""Unified message representation for incoming chat messages.

Key components:
- IncomingMessage: Platform-neutral incoming message with its element tree
- NameResolver: Protocol for asynchronous user/member display-name lookups
- Utility functions: User/chat key generation for logging and routing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Protocol, runtime_checkable

from .elements import Element, to_plain_text


@dataclass
class IncomingMessage:
    """Universal incoming message representation.

    Attributes:
        id: Platform-specific message ID.
        platform: Source platform identifier (e.g., "qq").
        chat_type: Type of chat (private DM or group).
        chat_id: Group ID. Empty string for private chats.
        sender_id: User ID on the platform.
        sender_name: Display name of the sender.
        elements: Structured message content.
        content: Plain text content. Derived from ``elements`` when omitted.
        mentions: List of @mentioned user IDs.
        is_at_bot: Whether the platform reports the bot as addressed.
        timestamp: When the message was created. Defaults to current time.
        raw_content: Platform-specific raw content for advanced use.
        metadata: Additional platform-specific metadata.

    Example:
        ```python
        msg = IncomingMessage(
            id="12345",
            platform="qq",
            chat_type="group",
            chat_id="123456",
            sender_id="987654321",
            sender_name="Alice",
            elements=[Element.at("10001"), Element.text(" hello")],
            is_at_bot=True,
        )
        ```
    """

    id: str
    platform: str
    chat_type: Literal["private", "group"]
    chat_id: str
    sender_id: str
    sender_name: str
    elements: list[Element] = field(default_factory=list)
    content: str | None = None
    mentions: list[str] = field(default_factory=list)
    is_at_bot: bool = False
    timestamp: datetime = field(default_factory=datetime.now)
    raw_content: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.content is None:
            self.content = to_plain_text(self.elements)

    @property
    def is_direct(self) -> bool:
        """True for one-to-one (private) chats."""
        return self.chat_type == "private"

    def to_dict(self) -> dict[str, Any]:
        """Convert message to a JSON-serializable dictionary (elements excluded)."""
        return {
            "id": self.id,
            "platform": self.platform,
            "chat_type": self.chat_type,
            "chat_id": self.chat_id,
            "sender_id": self.sender_id,
            "sender_name": self.sender_name,
            "content": self.content,
            "mentions": self.mentions,
            "is_at_bot": self.is_at_bot,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        return (
            f"<IncomingMessage id={self.id} platform={self.platform} "
            f"from {self.sender_name} ({self.sender_id})>"
        )


@runtime_checkable
class NameResolver(Protocol):
    """Protocol for resolving display names of users referenced in messages.

    Implementations may perform network calls and may raise on failure;
    callers are expected to treat failures as "no name available".
    """

    async def get_user_name(self, user_id: str) -> str:
        """Return the display name of a user."""
        ...

    async def get_guild_member_name(self, guild_id: str, user_id: str) -> str:
        """Return the display name of a member within a group."""
        ...


def get_user_key(message: IncomingMessage) -> str:
    """Generate unique user key.

    Format: `{platform}:{chat_type}:{sender_id}`
    """
    return f"{message.platform}:{message.chat_type}:{message.sender_id}"


def get_reply_target(message: IncomingMessage) -> str:
    """Return the provider target string for replying to a message.

    Format: `group:{chat_id}` or `private:{sender_id}`
    """
    if message.chat_type == "group":
        return f"group:{message.chat_id}"
    return f"private:{message.sender_id}"
