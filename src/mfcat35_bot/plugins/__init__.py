"""Plugin system for the mfcat35 bot."""

from .base import BasePlugin, PluginMetadata
from .config_schema import PluginConfigSchema
from .mfcat35 import Mfcat35Config, Mfcat35Plugin

__all__ = [
    "BasePlugin",
    "PluginMetadata",
    "PluginConfigSchema",
    "Mfcat35Config",
    "Mfcat35Plugin",
]
