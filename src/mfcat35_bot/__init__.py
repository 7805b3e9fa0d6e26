"""Mfcat35 Bot.

A QQ (OneBot 11 / Napcat) chatbot that answers through the mfcat 3.5
completion API:
- Message elements flattened into a plain-text prompt
- Prefix, private-chat and @mention triggers
- Failure-keyword suppression for automatic replies
- YAML and environment configuration

Example:
    ```python
    import asyncio

    from mfcat35_bot import Mfcat35Bot

    bot = Mfcat35Bot.from_config("config.yaml")
    asyncio.run(bot.run())
    ```
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mfcat35-bot")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0"

from .bot import Mfcat35Bot
from .core import BotConfig, get_logger, setup_logging
from .plugins import BasePlugin, Mfcat35Config, Mfcat35Plugin, PluginMetadata

__all__ = [
    "__version__",
    "Mfcat35Bot",
    "BotConfig",
    "BasePlugin",
    "PluginMetadata",
    "Mfcat35Config",
    "Mfcat35Plugin",
    "get_logger",
    "setup_logging",
]
