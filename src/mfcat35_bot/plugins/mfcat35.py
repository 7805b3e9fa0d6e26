"""Mfcat35 chat plugin.

Answers messages through the mfcat 3.5 completion API. A message is answered
when it starts with one of the configured prefixes, or, as a fallback when
nothing else handled it, when it arrives in a private chat or @mentions the
bot. Users can also call the ``mfcat35 <text>`` command directly.

Example configuration:
    ```yaml
    plugins:
      plugin_settings:
        - plugin_name: "mfcat35"
          settings:
            prefix: ["：", ":"]
            apiUrl: "https://api.lolimi.cn/API/AI/mfcat3.5.php"
            failureKeywords:
              - "Insufficient account balance"
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator

from ..chat.commands import CommandResult
from ..chat.dispatcher import BOTNAME_PLACEHOLDER, PromptDispatcher
from ..chat.sanitizer import sanitize_input
from ..chat.trigger import TriggerKind, classify
from .base import BasePlugin, PluginMetadata
from .config_schema import PluginConfigSchema

if TYPE_CHECKING:
    from ..chat.controller import ChatContext, ChatController, NextFunc

COMMAND_NAME = "mfcat35"

DEFAULT_PROMPT = (
    f"You are {BOTNAME_PLACEHOLDER}, a chatbot based on ChatGPT, "
    "a large language model trained by OpenAI based on the GPT-3.5 architecture.\n"
    "You are chatting with the user through a QQ group or private chat, "
    "which means most of the time your lines should be a sentence or two, "
    "unless the user's request requires reasoning or long-form outputs.\n"
    "Never use emojis, unless explicitly asked to."
)

DEFAULT_API_URL = "https://api.lolimi.cn/API/AI/mfcat3.5.php"

DEFAULT_FAILURE_KEYWORDS = [
    "ApiKey账户余额不足",
    "Insufficient account balance",
    "无效的 API Key",
    "输出错误请联系站长",
]


class Mfcat35Config(PluginConfigSchema):
    """Settings for the mfcat35 plugin."""

    model_config = {"frozen": True, "populate_by_name": True}

    prompt: str = Field(
        default=DEFAULT_PROMPT,
        description=f"System prompt; {BOTNAME_PLACEHOLDER} is replaced with the bot's name",
    )
    prefix: list[str] = Field(
        default_factory=lambda: ["：", ":"],
        description="Message prefixes that trigger a reply, tried in order",
    )
    api_url: str = Field(
        default=DEFAULT_API_URL,
        alias="apiUrl",
        description="API endpoint; prompt and text are sent as the sx and msg parameters",
    )
    failure_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FAILURE_KEYWORDS),
        alias="failureKeywords",
        description="Responses containing any of these are treated as failures",
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("apiUrl must start with http:// or https://")
        return value


class Mfcat35Plugin(BasePlugin):
    """Reply to chat messages with completions from the mfcat35 API."""

    config_schema = Mfcat35Config

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings: Mfcat35Config = self.load_config()
        self.dispatcher = PromptDispatcher(
            self.settings,
            nickname=self.config.general.get_nickname(),
            client=self.client,
            timeout=self.config.http.timeout,
        )

    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            name="mfcat35",
            version="1.0.0",
            description="Chat replies from the mfcat 3.5 completion API",
        )

    def on_chat_ready(self, controller: ChatController) -> None:
        command_handler = controller.command_handler

        @command_handler.register(COMMAND_NAME, "Ask the mfcat35 model")
        async def mfcat35(ctx: ChatContext | None, text: str, root: bool) -> CommandResult:
            if not text:
                if root:
                    return CommandResult(False, f"Usage: {COMMAND_NAME} <text>")
                return CommandResult(False, "")
            reply = await self.dispatcher.dispatch(text, ctx, root=root)
            return CommandResult(True, reply)

        async def run_command(ctx: ChatContext, text: str) -> str | None:
            result = await command_handler.execute(COMMAND_NAME, text, ctx, root=False)
            return result.response

        @controller.middleware
        async def mfcat35_trigger(ctx: ChatContext, call_next: NextFunc) -> str | None:
            content = await sanitize_input(ctx.message.elements, ctx)
            if not content:
                return await call_next()

            decision = classify(
                content,
                self.settings.prefix,
                is_direct=ctx.is_direct,
                was_addressed=ctx.was_addressed,
            )

            if decision.kind is TriggerKind.EXPLICIT:
                return await run_command(ctx, decision.text)

            if decision.kind is TriggerKind.IMPLICIT:
                self.logger.debug("temporary middleware %r", decision.text)

                async def deferred(ctx: ChatContext, call_next: NextFunc) -> str | None:
                    return await run_command(ctx, decision.text)

                return await call_next(deferred)

            return await call_next()

        self.logger.info("mfcat35 command and middleware registered")

    async def on_disable(self) -> None:
        await self.dispatcher.aclose()
