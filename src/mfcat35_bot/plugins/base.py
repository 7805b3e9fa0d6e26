"""Base plugin class and metadata.

All plugins should inherit from BasePlugin and implement the required methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.config import BotConfig
from ..core.logger import get_logger

if TYPE_CHECKING:
    import httpx

    from ..chat.controller import ChatController
    from ..core.provider import BaseProvider
    from .config_schema import PluginConfigSchema


@dataclass
class PluginMetadata:
    """Metadata for a plugin.

    Attributes:
        name: Plugin name, also the key under ``plugins.plugin_settings``
        version: Plugin version
        description: Plugin description
        author: Plugin author
        enabled: Whether plugin is enabled
    """

    name: str
    version: str = "1.0.0"
    description: str = ""
    author: str = ""
    enabled: bool = True


class BasePlugin(ABC):
    """Base class for all plugins.

    Plugins hook into message handling through ``on_chat_ready``, which
    receives the chat controller once it exists. There they register commands
    and middleware.

    Example:
        ```python
        class EchoPlugin(BasePlugin):
            def metadata(self) -> PluginMetadata:
                return PluginMetadata(name="echo")

            def on_chat_ready(self, controller: ChatController) -> None:
                @controller.command_handler.register("echo")
                async def echo(ctx, text, root):
                    return CommandResult(True, text)
        ```
    """

    # Subclasses set this to get validated, typed settings from load_config()
    config_schema: type[PluginConfigSchema] | None = None

    def __init__(
        self,
        config: BotConfig,
        client: httpx.AsyncClient | None = None,
        providers: dict[str, BaseProvider] | None = None,
    ):
        """Initialize the plugin.

        Args:
            config: Bot configuration
            client: Shared HTTP client for outbound API calls
            providers: Dict of all available providers
        """
        self.config = config
        self.client = client
        self._providers: dict[str, BaseProvider] = providers or {}
        self.logger = get_logger(f"plugin.{self.metadata().name}")

    @property
    def providers(self) -> dict[str, BaseProvider]:
        """Get all available providers."""
        return self._providers

    def get_provider(self, name: str) -> BaseProvider | None:
        return self._providers.get(name)

    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Return plugin metadata."""

    def on_load(self) -> None:
        """Called once after the plugin is constructed."""
        self.logger.debug("on_load called for %s", self.__class__.__name__)

    def on_enable(self) -> None:
        """Called when the bot starts and the plugin is ready to use."""
        self.logger.debug("on_enable default no-op for %s", self.__class__.__name__)

    def on_chat_ready(self, controller: ChatController) -> None:
        """Called with the chat controller so the plugin can register handlers."""
        self.logger.debug("on_chat_ready default no-op for %s", self.__class__.__name__)

    async def on_disable(self) -> None:
        """Called when the bot is shutting down.

        Use this to close clients and release resources.
        """
        self.logger.debug("on_disable default no-op for %s", self.__class__.__name__)

    def get_all_config(self) -> dict[str, Any]:
        """Get all configuration values for this plugin."""
        return self.config.plugins.get_plugin_settings(self.metadata().name)

    def load_config(self) -> PluginConfigSchema | None:
        """Build the schema instance from plugin settings.

        Raises:
            pydantic.ValidationError: If the settings do not match the schema
        """
        if self.config_schema is None:
            return None
        return self.config_schema.model_validate(self.get_all_config())
