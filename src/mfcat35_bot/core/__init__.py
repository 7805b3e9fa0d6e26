"""Core modules for the mfcat35 bot.

This package contains:
- Configuration management
- Logging utilities
- The message element tree and OneBot 11 conversion
- Incoming message model and parser
- Provider abstraction and the event server
"""

from .config import (
    BotConfig,
    ChatConfig,
    EventServerConfig,
    GeneralConfig,
    HTTPClientConfig,
    LoggingConfig,
    NapcatConfig,
    PluginConfig,
    PluginSettingsConfig,
)
from .elements import Element, elements_from_onebot, escape, to_plain_text, unescape
from .logger import get_logger, setup_logging
from .message_handler import IncomingMessage, NameResolver, get_reply_target, get_user_key
from .message_parsers import QQMessageParser, create_qq_parser
from .provider import BaseProvider, SendResult

__all__ = [
    # Config
    "BotConfig",
    "ChatConfig",
    "EventServerConfig",
    "GeneralConfig",
    "HTTPClientConfig",
    "LoggingConfig",
    "NapcatConfig",
    "PluginConfig",
    "PluginSettingsConfig",
    # Elements
    "Element",
    "elements_from_onebot",
    "escape",
    "to_plain_text",
    "unescape",
    # Logging
    "get_logger",
    "setup_logging",
    # Messages
    "IncomingMessage",
    "NameResolver",
    "get_reply_target",
    "get_user_key",
    "QQMessageParser",
    "create_qq_parser",
    # Providers
    "BaseProvider",
    "SendResult",
]
