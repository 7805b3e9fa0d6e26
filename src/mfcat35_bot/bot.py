"""Main bot class that orchestrates all components."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .chat.controller import ChatController, create_chat_controller
from .core.config import BotConfig
from .core.event_server import EventServer
from .core.logger import get_logger, setup_logging
from .core.message_parsers import QQMessageParser
from .core.provider import BaseProvider
from .plugins.base import BasePlugin
from .plugins.mfcat35 import Mfcat35Plugin
from .providers.qq_napcat import NapcatProvider

logger = get_logger("bot")

# Platform key used by QQMessageParser for every message
QQ_PLATFORM = "qq"

BUILTIN_PLUGINS: list[type[BasePlugin]] = [Mfcat35Plugin]


class Mfcat35Bot:
    """Main bot class that orchestrates all components.

    This class integrates:
    - Configuration and logging
    - The Napcat provider (replies and name lookups)
    - The chat controller with plugin commands and middleware
    - The OneBot 11 event server

    Example:
        ```python
        import asyncio

        bot = Mfcat35Bot.from_config("config.yaml")
        asyncio.run(bot.run())
        ```
    """

    def __init__(
        self,
        config: BotConfig,
        provider: BaseProvider | None = None,
        plugin_classes: list[type[BasePlugin]] | None = None,
    ):
        """Initialize the bot.

        Args:
            config: Bot configuration
            provider: QQ provider; a NapcatProvider is built from config when omitted
            plugin_classes: Plugins to load; the built-in plugins when omitted
        """
        self.config = config
        self._setup_logging()

        self.provider: BaseProvider = provider or NapcatProvider(config.napcat)
        self.providers: dict[str, BaseProvider] = {QQ_PLATFORM: self.provider}
        self.parser = QQMessageParser(bot_qq=config.napcat.bot_qq)
        self.chat_controller: ChatController = create_chat_controller(config, self.providers)

        self.plugins: list[BasePlugin] = []
        self._init_plugins(BUILTIN_PLUGINS if plugin_classes is None else plugin_classes)

        self.event_server = EventServer(
            config.event_server,
            self.handle_event,
            access_token=config.napcat.access_token,
        )
        self._running = False

        logger.info("Bot initialized: %s", config.general.name)

    def _setup_logging(self) -> None:
        setup_logging(self.config.logging)

    def _init_plugins(self, plugin_classes: list[type[BasePlugin]]) -> None:
        for plugin_cls in plugin_classes:
            try:
                plugin = plugin_cls(self.config, providers=self.providers)
            except ValidationError as exc:
                logger.error("Invalid configuration for plugin %s: %s", plugin_cls.__name__, exc)
                raise

            name = plugin.metadata().name
            if not self.config.plugins.is_enabled(name):
                logger.info("Plugin disabled by configuration: %s", name)
                continue

            plugin.on_load()
            plugin.on_chat_ready(self.chat_controller)
            self.plugins.append(plugin)
            logger.info("Loaded plugin: %s", name)

    async def handle_event(self, payload: dict[str, Any]) -> str | None:
        """Handle one OneBot 11 event.

        Returns:
            The reply sent, or None
        """
        if not self.parser.can_parse(payload):
            logger.debug(
                "Ignoring non-message event: post_type=%s", payload.get("post_type")
            )
            return None

        message = self.parser.parse(payload)
        if message is None:
            return None

        return await self.chat_controller.handle_incoming(message)

    async def start(self) -> None:
        """Connect the provider and enable plugins."""
        if self._running:
            logger.warning("Bot is already running")
            return

        await self.provider.async_connect()
        for plugin in self.plugins:
            plugin.on_enable()
        self._running = True
        logger.info("Bot started")

    async def stop(self) -> None:
        """Disable plugins and disconnect the provider."""
        if not self._running:
            return

        self.event_server.stop()
        for plugin in self.plugins:
            try:
                await plugin.on_disable()
            except Exception as exc:
                logger.error("Error disabling plugin %s: %s", plugin.metadata().name, exc)
        await self.provider.async_disconnect()
        self._running = False
        logger.info("Bot stopped")

    async def run(self) -> None:
        """Start, serve events until interrupted, then stop."""
        await self.start()
        try:
            await self.event_server.serve()
        finally:
            await self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    @classmethod
    def from_config(cls, config_path: str | Path) -> Mfcat35Bot:
        """Create bot from a YAML configuration file.

        Raises:
            ValueError: If the file extension is not .yaml or .yml
            FileNotFoundError: If the file does not exist
        """
        config_path = Path(config_path).expanduser()

        if config_path.suffix not in [".yaml", ".yml"]:
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        try:
            config = BotConfig.from_yaml(config_path)
        except Exception as exc:
            logger.error(
                "Failed to load configuration from %s: %s",
                config_path,
                exc,
                exc_info=True,
            )
            raise

        return cls(config)
