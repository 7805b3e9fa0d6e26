"""Test configuration hooks."""

from __future__ import annotations

import pytest

from mfcat35_bot.chat.controller import ChatContext
from mfcat35_bot.core.message_handler import IncomingMessage, get_user_key
from mfcat35_bot.core.provider import BaseProvider, SendResult


# Configure anyio to only use asyncio backend (skip trio tests)
@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


class StubProvider(BaseProvider):
    """Provider stub capturing sent messages and answering name lookups."""

    provider_type = "stub"

    def __init__(
        self,
        users: dict[str, str] | None = None,
        members: dict[tuple[str, str], str] | None = None,
        self_name: str | None = None,
    ) -> None:
        super().__init__("stub")
        self.users = users or {}
        self.members = members or {}
        self._self_name = self_name
        self.sent: list[tuple[str, str]] = []
        self.user_lookups: list[str] = []
        self.member_lookups: list[tuple[str, str]] = []

    @property
    def self_name(self) -> str | None:
        return self._self_name

    async def async_connect(self) -> None:
        self._connected = True

    async def async_disconnect(self) -> None:
        self._connected = False

    async def async_send_text(self, text: str, target: str) -> SendResult:
        self.sent.append((text, target))
        return SendResult.ok(f"msg_{len(self.sent)}")

    async def get_user_name(self, user_id: str) -> str:
        self.user_lookups.append(user_id)
        if user_id not in self.users:
            raise LookupError(user_id)
        return self.users[user_id]

    async def get_guild_member_name(self, guild_id: str, user_id: str) -> str:
        self.member_lookups.append((guild_id, user_id))
        if (guild_id, user_id) not in self.members:
            raise LookupError(user_id)
        return self.members[(guild_id, user_id)]


def make_message(
    elements=None,
    chat_type: str = "group",
    is_at_bot: bool = False,
    content: str | None = None,
) -> IncomingMessage:
    """Build a QQ message for tests."""
    return IncomingMessage(
        id="m1",
        platform="qq",
        chat_type=chat_type,
        chat_id="20001" if chat_type == "group" else "",
        sender_id="30001",
        sender_name="Alice",
        elements=list(elements or []),
        content=content,
        is_at_bot=is_at_bot,
    )


def make_context(message: IncomingMessage, provider=None) -> ChatContext:
    return ChatContext(message=message, user_key=get_user_key(message), provider=provider)


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()
