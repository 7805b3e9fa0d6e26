"""Send prompts to the completion API and post-process the response.

The API is a plain HTTP GET endpoint taking two query parameters: ``sx`` (the
system prompt) and ``msg`` (the user's text). The response body is read as text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ..core.elements import escape
from ..core.logger import get_logger

if TYPE_CHECKING:
    from ..plugins.mfcat35 import Mfcat35Config
    from .controller import ChatContext

logger = get_logger("chat.dispatcher")

BOTNAME_PLACEHOLDER = "@@__BOTNAME__@@"
DEFAULT_BOT_NAME = "Mfcat35"


class PromptDispatcher:
    """Build requests for the completion API and turn responses into replies.

    Example:
        ```python
        dispatcher = PromptDispatcher(Mfcat35Config(), nickname="Cat")
        reply = await dispatcher.dispatch("hello", ctx, root=True)
        ```
    """

    def __init__(
        self,
        settings: Mfcat35Config,
        nickname: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            settings: Plugin configuration (prompt, API URL, failure keywords)
            nickname: Configured bot nickname, preferred over the account name
            client: Optional shared HTTP client
            timeout: Request timeout used when the dispatcher creates its own client
        """
        self.settings = settings
        self.nickname = nickname
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def resolve_bot_name(self, ctx: ChatContext | None = None) -> str:
        """Pick the name substituted into the prompt.

        Order: configured nickname, the bot account's own name, a fixed default.
        """
        bot_name = ctx.bot_name if ctx is not None else None
        return self.nickname or bot_name or DEFAULT_BOT_NAME

    def build_params(self, text: str, bot_name: str) -> dict[str, str]:
        """Return the query parameters for one request."""
        return {
            "sx": self.settings.prompt.replace(BOTNAME_PLACEHOLDER, bot_name),
            "msg": text,
        }

    def is_failure(self, response: str) -> bool:
        """Return True if the body contains any configured failure keyword."""
        return any(keyword in response for keyword in self.settings.failure_keywords)

    async def request(self, text: str, bot_name: str) -> str:
        """Issue the GET request and return the raw body.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx status
        """
        response = await self._get_client().get(
            self.settings.api_url,
            params=self.build_params(text, bot_name),
        )
        response.raise_for_status()
        return response.text

    async def dispatch(self, text: str, ctx: ChatContext | None = None, root: bool = False) -> str:
        """Send the text to the API and return the escaped reply.

        A response containing a failure keyword is logged as an error. It is
        still returned when the user invoked the command directly (``root``),
        and replaced by an empty string otherwise.

        Args:
            text: User text to send
            ctx: Chat context, used for the bot account name
            root: Whether the user invoked the command directly

        Returns:
            Escaped reply text, or "" when a failure is suppressed

        Raises:
            httpx.HTTPError: On transport errors or non-2xx status
        """
        logger.debug("input %r", text)
        response = await self.request(text, self.resolve_bot_name(ctx))

        if self.is_failure(response):
            logger.error("error response %r", response)
            if not root:
                return ""
        else:
            logger.debug("response %r", response)

        return escape(response)
