"""Configuration management for the mfcat35 bot.

This module provides configuration models and loading functionality using Pydantic
for validation and type safety.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DOTENV_LOADED = False


def _load_env_once() -> None:
    """Load environment variables from a .env file exactly once."""

    global _DOTENV_LOADED
    if not _DOTENV_LOADED:
        load_dotenv()
        _DOTENV_LOADED = True


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in configuration data."""

    if isinstance(data, str):
        return os.path.expandvars(data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    log_file: str | None = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10485760, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")

    @field_validator("level")
    @classmethod
    def normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class GeneralConfig(BaseModel):
    """General bot configuration."""

    name: str = Field(default="mfcat35-bot", description="Bot name")
    nickname: str | list[str] | None = Field(
        default=None,
        description="Bot nickname(s); the first one is used as the bot's display name",
    )

    def get_nickname(self) -> str | None:
        """Return the configured display nickname, if any."""
        if isinstance(self.nickname, list):
            return self.nickname[0] if self.nickname else None
        return self.nickname


class HTTPClientConfig(BaseModel):
    """Default HTTP client configuration."""

    timeout: float = Field(default=30.0, ge=0.0, description="HTTP timeout in seconds")


class NapcatConfig(BaseModel):
    """Connection settings for the Napcat (OneBot 11) HTTP API."""

    name: str = Field(default="napcat", description="Provider instance name")
    http_url: str = Field(
        default="http://127.0.0.1:3000",
        description="Napcat HTTP API base URL",
    )
    access_token: str | None = Field(
        default=None,
        description="Napcat access token; also required on inbound events when set",
    )
    bot_qq: str | None = Field(
        default=None,
        description="Bot's QQ number for @mention detection (defaults to event self_id)",
    )
    timeout: float = Field(default=10.0, ge=0.0, description="Request timeout")

    @field_validator("http_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("http_url must start with http:// or https://")
        return value.rstrip("/")


class EventServerConfig(BaseModel):
    """Inbound OneBot 11 event server settings."""

    enabled: bool = Field(default=True, description="Enable the event server")
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    path: str = Field(default="/qq/events", description="Event callback path")

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            return f"/{value}"
        return value


class ChatConfig(BaseModel):
    """Configuration for chat controller behaviour."""

    enabled: bool = Field(default=True, description="Enable chat functionality")
    enable_in_groups: bool = Field(default=True, description="Enable in group chats")
    enable_private: bool = Field(default=True, description="Enable private chats")
    command_prefix: str = Field(default="", description="Prefix for commands")
    max_message_length: int = Field(
        default=4000,
        ge=4,
        description="Maximum response message length",
    )


class PluginSettingsConfig(BaseModel):
    """Plugin-specific settings that can be configured in YAML."""

    plugin_name: str = Field(..., description="Name of the plugin these settings apply to")
    enabled: bool = Field(default=True, description="Whether this plugin is enabled")
    settings: dict[str, Any] = Field(
        default_factory=dict, description="Plugin-specific configuration parameters"
    )


class PluginConfig(BaseModel):
    """Configuration for the plugin system."""

    plugin_settings: list[PluginSettingsConfig] = Field(
        default_factory=list, description="Per-plugin configuration settings"
    )

    def get_plugin_settings(self, plugin_name: str) -> dict[str, Any]:
        """Get settings for a specific plugin."""
        for plugin_setting in self.plugin_settings:
            if plugin_setting.plugin_name == plugin_name:
                return plugin_setting.settings
        return {}

    def is_enabled(self, plugin_name: str) -> bool:
        """Return False only when the plugin is explicitly disabled."""
        for plugin_setting in self.plugin_settings:
            if plugin_setting.plugin_name == plugin_name:
                return plugin_setting.enabled
        return True


class BotConfig(BaseSettings):
    """Main configuration for the mfcat35 bot."""

    model_config = SettingsConfigDict(
        env_prefix="MFCAT35_BOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    general: GeneralConfig = Field(
        default_factory=GeneralConfig, description="General configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    http: HTTPClientConfig = Field(
        default_factory=HTTPClientConfig, description="Default HTTP client settings"
    )
    napcat: NapcatConfig = Field(
        default_factory=NapcatConfig, description="Napcat/QQ connection settings"
    )
    event_server: EventServerConfig = Field(
        default_factory=EventServerConfig, description="Inbound event server settings"
    )
    chat: ChatConfig = Field(default_factory=ChatConfig, description="Chat settings")
    plugins: PluginConfig = Field(default_factory=PluginConfig, description="Plugin configuration")

    @classmethod
    def from_yaml(cls, path: str | Path) -> BotConfig:
        """Load configuration from a YAML file."""

        _load_env_once()
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as handle:
            try:
                config_data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in config file: {exc}") from exc

        if not config_data:
            config_data = {}

        config_data = _expand_env_vars(config_data)
        return cls(**config_data)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dictionary suitable for YAML dumping."""
        return self.model_dump(mode="json", by_alias=True)

    def to_yaml(self, path: str | Path) -> None:
        """Write this configuration to a YAML file."""
        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(self.to_dict(), handle, allow_unicode=True, sort_keys=False)
