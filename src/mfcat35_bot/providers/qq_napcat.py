"""QQ Napcat provider based on the OneBot 11 HTTP API.

Compatible with NapCatQQ, LLOneBot, Lagrange and other OneBot 11 implementations.

Features:
- Async text replies to private and group chats
- User and group member lookups used for mention name resolution
- Bot account info (own nickname) cached on connect
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel

from ..core.config import NapcatConfig
from ..core.elements import unescape
from ..core.provider import BaseProvider, SendResult

# ==============================================================================
# Data Models
# ==============================================================================


@dataclass
class QQUserInfo:
    """QQ user information."""

    user_id: int
    nickname: str
    sex: str = "unknown"
    age: int = 0


@dataclass
class QQGroupMember:
    """QQ group member information."""

    group_id: int
    user_id: int
    nickname: str
    card: str = ""  # Group card/nickname
    role: str = "member"  # owner, admin, member

    @property
    def display_name(self) -> str:
        return self.card or self.nickname


class OneBotResponse(BaseModel):
    """OneBot API response model."""

    status: str  # ok, failed, async
    retcode: int = 0
    data: Any = None
    msg: str = ""
    wording: str = ""


# ==============================================================================
# Provider
# ==============================================================================


class NapcatProvider(BaseProvider):
    """QQ Napcat message provider.

    Example:
        ```python
        config = NapcatConfig(http_url="http://127.0.0.1:3000", access_token="token")

        async with NapcatProvider(config) as provider:
            name = await provider.get_user_name("123456")
            await provider.async_send_text("hello", "group:654321")
        ```
    """

    provider_type = "napcat"

    def __init__(self, config: NapcatConfig, client: httpx.AsyncClient | None = None):
        """Initialize the provider.

        Args:
            config: Napcat connection settings
            client: Optional pre-built client (tests, shared pools)
        """
        super().__init__(config.name)
        self.config = config
        self._async_client = client
        self._self_name: str | None = None
        self._self_id: str | None = None

    @property
    def self_name(self) -> str | None:
        return self._self_name

    @property
    def self_id(self) -> str | None:
        return self._self_id or self.config.bot_qq

    async def async_connect(self) -> None:
        """Create the HTTP client and cache the bot's own account info."""
        if self._async_client is None:
            headers = {"Content-Type": "application/json"}
            if self.config.access_token:
                headers["Authorization"] = f"Bearer {self.config.access_token}"

            self._async_client = httpx.AsyncClient(
                timeout=self.config.timeout,
                headers=headers,
                base_url=self.config.http_url,
            )

        self._connected = True
        try:
            info = await self.async_get_login_info()
            self._self_id = str(info.get("user_id", "")) or None
            self._self_name = info.get("nickname") or None
            self.logger.info(
                "Connected to Napcat: %s (bot=%s %s)",
                self.config.name,
                self._self_id,
                self._self_name,
            )
        except Exception as e:
            self.logger.warning("Connected to Napcat but login info is unavailable: %s", e)

    async def async_disconnect(self) -> None:
        """Close the HTTP client."""
        if self._async_client:
            await self._async_client.aclose()
            self._async_client = None
        self._connected = False
        self.logger.info("Disconnected from Napcat: %s", self.config.name)

    async def _async_call_api(self, endpoint: str, payload: dict[str, Any]) -> Any:
        """Call OneBot API endpoint.

        Args:
            endpoint: API endpoint path
            payload: Request payload

        Returns:
            Response data field

        Raises:
            httpx.HTTPError: On transport or HTTP status errors
            ValueError: If OneBot reports a failed status
        """
        if not self._async_client:
            await self.async_connect()

        response = await self._async_client.post(endpoint, json=payload)
        response.raise_for_status()
        result = OneBotResponse.model_validate(response.json())

        if result.status != "ok":
            raise ValueError(f"OneBot API error: {result.wording or result.msg or result.retcode}")

        return result.data

    @staticmethod
    def _parse_target(target: str) -> tuple[int | None, int | None]:
        """Parse "private:ID" / "group:ID" into (user_id, group_id)."""
        target_type, _, target_id = target.partition(":")
        try:
            if target_type == "private":
                return int(target_id), None
            if target_type == "group":
                return None, int(target_id)
        except ValueError:
            pass
        return None, None

    # ==========================================================================
    # Account and user info
    # ==========================================================================

    async def async_get_login_info(self) -> dict[str, Any]:
        """Get the bot account's user_id and nickname."""
        return await self._async_call_api("/get_login_info", {}) or {}

    async def async_get_stranger_info(
        self, user_id: int, no_cache: bool = False
    ) -> QQUserInfo | None:
        """Get user information.

        Raises:
            httpx.HTTPError | ValueError: If the API call fails
        """
        data = await self._async_call_api(
            "/get_stranger_info",
            {"user_id": user_id, "no_cache": no_cache},
        )
        if not data:
            return None
        return QQUserInfo(
            user_id=data.get("user_id", user_id),
            nickname=data.get("nickname", ""),
            sex=data.get("sex", "unknown"),
            age=data.get("age", 0),
        )

    async def async_get_group_member_info(
        self, group_id: int, user_id: int, no_cache: bool = False
    ) -> QQGroupMember | None:
        """Get group member information.

        Raises:
            httpx.HTTPError | ValueError: If the API call fails
        """
        data = await self._async_call_api(
            "/get_group_member_info",
            {"group_id": group_id, "user_id": user_id, "no_cache": no_cache},
        )
        if not data:
            return None
        return QQGroupMember(
            group_id=data.get("group_id", group_id),
            user_id=data.get("user_id", user_id),
            nickname=data.get("nickname", ""),
            card=data.get("card", ""),
            role=data.get("role", "member"),
        )

    # NameResolver protocol

    async def get_user_name(self, user_id: str) -> str:
        info = await self.async_get_stranger_info(int(user_id))
        if info is None:
            raise LookupError(f"Unknown user: {user_id}")
        return info.nickname

    async def get_guild_member_name(self, guild_id: str, user_id: str) -> str:
        member = await self.async_get_group_member_info(int(guild_id), int(user_id))
        if member is None:
            raise LookupError(f"Unknown member {user_id} in group {guild_id}")
        return member.display_name

    # ==========================================================================
    # Sending
    # ==========================================================================

    async def async_send_text(self, text: str, target: str) -> SendResult:
        """Send a text message.

        The text is decoded from its escaped form and sent as a single text
        segment, so nothing in it is interpreted as a CQ code.

        Args:
            text: Escaped reply text
            target: Target in format "private:QQ号" or "group:群号"

        Returns:
            SendResult with status and message ID
        """
        user_id, group_id = self._parse_target(target)
        if not user_id and not group_id:
            return SendResult.fail("Invalid target format. Use 'private:QQ号' or 'group:群号'")

        message_segments = [{"type": "text", "data": {"text": unescape(text)}}]
        if user_id:
            endpoint = "/send_private_msg"
            payload: dict[str, Any] = {"user_id": user_id, "message": message_segments}
        else:
            endpoint = "/send_group_msg"
            payload = {"group_id": group_id, "message": message_segments}

        try:
            result = await self._async_call_api(endpoint, payload)
        except Exception as e:
            self.logger.error("Failed to send message to %s: %s", target, e)
            return SendResult.fail(str(e))

        message_id = str((result or {}).get("message_id") or uuid.uuid4())
        self.logger.debug("Message sent to %s: %s", target, message_id)
        return SendResult.ok(message_id, result)
