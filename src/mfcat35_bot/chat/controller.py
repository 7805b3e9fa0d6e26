"""Chat controller for incoming message handling.

This module provides the orchestrator that routes each incoming message through
the command table and the middleware chain, then sends the resulting reply
back through the platform provider.

Key features:
- Chat-type gating (private / group)
- Command dispatch for directly typed commands
- Ordered middleware chain with ``next()`` continuation
- Deferred middleware that only runs when nothing else replied
- Reply truncation and delivery
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..core.config import BotConfig, ChatConfig
from ..core.elements import escape, unescape
from ..core.logger import get_logger
from ..core.message_handler import (
    IncomingMessage,
    NameResolver,
    get_reply_target,
    get_user_key,
)
from ..core.provider import BaseProvider, SendResult
from .commands import CommandHandler

logger = get_logger("chat_controller")


@dataclass
class ChatContext:
    """Runtime context for a single message interaction.

    Attributes:
        message: The incoming message being processed
        user_key: Unique user identifier (platform:chat_type:sender_id)
        provider: Provider for the source platform; also used for name lookups
        metadata: Additional runtime metadata for middleware
    """

    message: IncomingMessage
    user_key: str
    provider: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_direct(self) -> bool:
        return self.message.is_direct

    @property
    def guild_id(self) -> str:
        return self.message.chat_id

    @property
    def was_addressed(self) -> bool:
        return self.message.is_at_bot

    @property
    def resolver(self) -> NameResolver | None:
        if isinstance(self.provider, NameResolver):
            return self.provider
        return None

    @property
    def bot_name(self) -> str | None:
        return getattr(self.provider, "self_name", None)


class NextFunc(Protocol):
    """Continuation passed to middleware.

    ``await call_next()`` hands the message to the rest of the chain.
    ``await call_next(callback)`` does the same and queues ``callback`` to run
    once every registered middleware has passed without replying.
    """

    def __call__(self, callback: Middleware | None = None) -> Awaitable[str | None]: ...


Middleware = Callable[[ChatContext, NextFunc], Awaitable[str | None]]


class ChatController:
    """Route incoming messages to commands and middleware, then reply.

    Example:
        ```python
        controller = ChatController(
            command_handler=CommandHandler(),
            providers={"qq": napcat_provider},
        )

        @controller.middleware
        async def greet(ctx: ChatContext, call_next: NextFunc) -> str | None:
            if ctx.message.content == "hi":
                return "hello"
            return await call_next()

        await controller.handle_incoming(message)
        ```
    """

    def __init__(
        self,
        command_handler: CommandHandler | None = None,
        providers: dict[str, BaseProvider] | None = None,
        config: ChatConfig | None = None,
    ):
        """Initialize chat controller.

        Args:
            command_handler: Command table; a fresh one is created when omitted
            providers: Dict of platform providers {platform: provider}
            config: Chat configuration
        """
        self.config = config or ChatConfig()
        self.command_handler = command_handler or CommandHandler(self.config.command_prefix)
        self.providers = providers or {}
        self._middlewares: list[Middleware] = []

        logger.debug(
            "ChatController initialized: providers=%s, config=%s",
            list(self.providers.keys()),
            self.config,
        )

    def middleware(self, func: Middleware) -> Middleware:
        """Register a middleware. Usable as a decorator.

        Middleware runs in registration order. Returning a non-empty string
        ends processing with that string as the reply; returning
        ``await call_next()`` passes the message on.
        """
        self._middlewares.append(func)
        logger.debug("Registered middleware: %s", getattr(func, "__name__", func))
        return func

    def remove_middleware(self, func: Middleware) -> bool:
        """Unregister a middleware. Returns False if it was not registered."""
        try:
            self._middlewares.remove(func)
        except ValueError:
            return False
        return True

    def get_provider(self, platform: str) -> BaseProvider | None:
        return self.providers.get(platform)

    async def handle_incoming(self, message: IncomingMessage) -> str | None:
        """Main entry point for handling incoming messages.

        Errors raised while processing are logged and end processing of this
        message only.

        Args:
            message: Incoming message

        Returns:
            The reply that was sent, or None
        """
        logger.debug(
            "Handling incoming message: id=%s, platform=%s, from=%s",
            message.id,
            message.platform,
            message.sender_id,
        )

        if not self.config.enabled:
            logger.debug("Chat disabled, ignoring message")
            return None

        if message.chat_type == "group" and not self.config.enable_in_groups:
            logger.debug("Group chat disabled, ignoring")
            return None

        if message.chat_type == "private" and not self.config.enable_private:
            logger.debug("Private chat disabled, ignoring")
            return None

        ctx = ChatContext(
            message=message,
            user_key=get_user_key(message),
            provider=self.get_provider(message.platform),
        )

        try:
            reply = await self._process_message(ctx)
        except Exception as e:
            logger.error("Error processing message %s: %s", message.id, e, exc_info=True)
            return None

        if not reply:
            return None

        reply = truncate_reply(reply, self.config.max_message_length)

        await self.send_reply(message, reply)
        return reply

    async def _process_message(self, ctx: ChatContext) -> str | None:
        """Run a typed command, or the middleware chain."""
        matched = self.command_handler.match(ctx.message.content or "")
        if matched:
            name, text = matched
            result = await self.command_handler.execute(name, text, ctx, root=True)
            return result.response

        return await self.run_middlewares(ctx)

    async def run_middlewares(self, ctx: ChatContext) -> str | None:
        """Run the middleware chain, then any deferred middleware.

        Returns:
            The first reply produced, or None
        """
        middlewares = list(self._middlewares)
        deferred: list[Middleware] = []

        async def run_deferred(index: int) -> str | None:
            if index >= len(deferred):
                return None

            async def call_next(callback: Middleware | None = None) -> str | None:
                if callback is not None:
                    deferred.append(callback)
                return await run_deferred(index + 1)

            return await deferred[index](ctx, call_next)

        async def run(index: int) -> str | None:
            if index >= len(middlewares):
                return await run_deferred(0)

            async def call_next(callback: Middleware | None = None) -> str | None:
                if callback is not None:
                    deferred.append(callback)
                return await run(index + 1)

            return await middlewares[index](ctx, call_next)

        return await run(0)

    async def send_reply(self, original: IncomingMessage, reply: str) -> SendResult | None:
        """Send reply to the chat the original message came from.

        Returns:
            SendResult, or None if no provider handles the platform
        """
        if not reply or not reply.strip():
            logger.warning("Attempted to send empty reply")
            return None

        provider = self.get_provider(original.platform)
        if not provider:
            logger.error("No provider found for platform: %s", original.platform)
            return None

        target = get_reply_target(original)
        logger.debug("Sending reply via %s to target: %s", original.platform, target)
        result = await provider.async_send_text(reply, target)
        if result.success:
            logger.info("Reply sent successfully: %s", result.message_id)
        else:
            logger.error("Reply send failed: %s", result.error)
        return result


def truncate_reply(reply: str, limit: int) -> str:
    """Shorten an escaped reply to at most ``limit`` visible characters.

    Length is measured on the unescaped text so entities are never split.
    """
    text = unescape(reply)
    if len(text) <= limit:
        return reply
    return escape(text[: limit - 3] + "...")


def create_chat_controller(
    config: BotConfig,
    providers: dict[str, BaseProvider] | None = None,
) -> ChatController:
    """Create a chat controller from bot configuration."""
    return ChatController(
        command_handler=CommandHandler(config.chat.command_prefix),
        providers=providers,
        config=config.chat,
    )
