"""Parse OneBot 11 events from QQ/Napcat into IncomingMessage.

OneBot 11 message event structure:
```json
{
    "post_type": "message",
    "message_type": "group",
    "time": 1234567890,
    "self_id": 123456789,
    "user_id": 987654321,
    "group_id": 123456,
    "message_id": 12345,
    "message": [
        {"type": "at", "data": {"qq": "123456789"}},
        {"type": "text", "data": {"text": " hello"}}
    ],
    "raw_message": "[CQ:at,qq=123456789] hello",
    "sender": {"user_id": 987654321, "nickname": "Alice", "card": "Alice in Wonderland"}
}
```
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .elements import Element, elements_from_onebot
from .logger import get_logger
from .message_handler import IncomingMessage

logger = get_logger("message_parsers")


class QQMessageParser:
    """Parse OneBot 11 message events into IncomingMessage.

    Example:
        ```python
        parser = QQMessageParser(bot_qq="123456789")

        if parser.can_parse(payload):
            message = parser.parse(payload)
        ```
    """

    def __init__(self, bot_qq: str | None = None):
        """Initialize QQ message parser.

        Args:
            bot_qq: Bot's QQ number for @mention detection. Falls back to the
                event's ``self_id`` when not set.
        """
        self.bot_qq = bot_qq

    def can_parse(self, payload: dict[str, Any]) -> bool:
        """Return True for OneBot 11 message events."""
        return payload.get("post_type") == "message"

    def parse(self, payload: dict[str, Any]) -> IncomingMessage | None:
        """Parse OneBot 11 event payload into IncomingMessage.

        Args:
            payload: OneBot 11 event payload.

        Returns:
            IncomingMessage if parsing succeeds, None otherwise.
        """
        if not self.can_parse(payload):
            return None

        try:
            return self._parse_message(payload)
        except Exception as e:
            logger.error("Failed to parse QQ message: %s", e, exc_info=True)
            return None

    def _parse_message(self, payload: dict[str, Any]) -> IncomingMessage:
        message_type = payload.get("message_type", "private")
        chat_type = "group" if message_type == "group" else "private"

        message_id = str(payload.get("message_id", ""))
        user_id = str(payload.get("user_id", ""))
        group_id = str(payload.get("group_id", "")) if chat_type == "group" else ""

        sender = payload.get("sender") or {}
        sender_name = sender.get("card") or sender.get("nickname") or user_id

        message_data = payload.get("message")
        if message_data is None:
            message_data = payload.get("raw_message", "")
        elements = elements_from_onebot(message_data)
        mentions = self._extract_mentions(elements)

        bot_qq = self.bot_qq or (str(payload["self_id"]) if payload.get("self_id") else None)
        is_at_bot = bool(bot_qq) and bot_qq in mentions

        time_val = payload.get("time")
        timestamp = datetime.fromtimestamp(time_val) if time_val else datetime.now()

        return IncomingMessage(
            id=message_id,
            platform="qq",
            chat_type=chat_type,
            chat_id=group_id,
            sender_id=user_id,
            sender_name=sender_name,
            elements=elements,
            mentions=mentions,
            is_at_bot=is_at_bot,
            timestamp=timestamp,
            raw_content=message_data,
            metadata={
                "sub_type": payload.get("sub_type"),
                "self_id": payload.get("self_id"),
                "raw_message": payload.get("raw_message", ""),
                "sender": sender,
            },
        )

    def _extract_mentions(self, elements: list[Element]) -> list[str]:
        """Collect mentioned user ids in order, without duplicates."""
        mentions: list[str] = []
        for element in elements:
            if element.type == "at":
                user_id = element.get("id")
                if user_id and user_id not in mentions:
                    mentions.append(user_id)
        return mentions


def create_qq_parser(bot_qq: str | None = None) -> QQMessageParser:
    """Create a configured QQ message parser."""
    return QQMessageParser(bot_qq=bot_qq)
