"""End-to-end tests for the mfcat35 plugin through the chat controller."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from pytest_httpx import HTTPXMock

from conftest import StubProvider, make_message
from mfcat35_bot.chat.controller import ChatController
from mfcat35_bot.core.config import BotConfig
from mfcat35_bot.core.elements import Element
from mfcat35_bot.plugins.mfcat35 import Mfcat35Config, Mfcat35Plugin

API_URL = "https://api.example.com/chat"


def make_config(**settings) -> BotConfig:
    settings.setdefault("apiUrl", API_URL)
    settings.setdefault("failureKeywords", ["quota exceeded"])
    return BotConfig(
        general={"nickname": "Cat"},
        plugins={"plugin_settings": [{"plugin_name": "mfcat35", "settings": settings}]},
    )


@pytest.fixture
async def setup():
    async def build(**settings):
        provider = StubProvider()
        config = make_config(**settings)
        controller = ChatController(providers={"qq": provider}, config=config.chat)
        plugin = Mfcat35Plugin(config, providers={"qq": provider})
        plugin.on_chat_ready(controller)
        plugins.append(plugin)
        return provider, controller, plugin

    plugins: list[Mfcat35Plugin] = []
    yield build
    for plugin in plugins:
        await plugin.on_disable()


def text(content: str, **kwargs):
    return make_message([Element.text(content)], **kwargs)


class TestSettings:
    def test_settings_loaded_with_aliases(self):
        plugin = Mfcat35Plugin(make_config(prefix=["!"]))

        assert plugin.settings.api_url == API_URL
        assert plugin.settings.prefix == ["!"]
        assert plugin.settings.failure_keywords == ["quota exceeded"]
        assert plugin.dispatcher.nickname == "Cat"

    def test_defaults(self):
        settings = Mfcat35Config()

        assert settings.prefix == ["：", ":"]
        assert "@@__BOTNAME__@@" in settings.prompt
        assert "Insufficient account balance" in settings.failure_keywords

    def test_settings_are_frozen(self):
        with pytest.raises(ValidationError):
            Mfcat35Config().prefix = ["!"]

    @pytest.mark.parametrize("url", ["ftp://x", "api.example.com", ""])
    def test_non_http_api_url_rejected(self, url):
        with pytest.raises(ValidationError, match="apiUrl must start with"):
            Mfcat35Plugin(make_config(apiUrl=url))

    def test_api_url_is_stripped(self):
        assert Mfcat35Config(apiUrl=" https://x.y/api ").api_url == "https://x.y/api"


class TestTriggers:
    @pytest.mark.anyio
    async def test_explicit_prefix_in_group(self, setup, httpx_mock: HTTPXMock):
        httpx_mock.add_response(text="Sunny <25C>")
        provider, controller, _ = await setup()

        reply = await controller.handle_incoming(text("：today's weather"))

        request = httpx_mock.get_requests()[0]
        assert request.url.params["msg"] == "today's weather"
        assert "Cat" in request.url.params["sx"]
        assert reply == "Sunny &lt;25C&gt;"
        assert provider.sent == [("Sunny &lt;25C&gt;", "group:20001")]

    @pytest.mark.anyio
    async def test_direct_message_without_prefix(self, setup, httpx_mock: HTTPXMock):
        httpx_mock.add_response(text="hi there")
        provider, controller, _ = await setup()

        reply = await controller.handle_incoming(text("hello", chat_type="private"))

        assert httpx_mock.get_requests()[0].url.params["msg"] == "hello"
        assert reply == "hi there"
        assert provider.sent == [("hi there", "private:30001")]

    @pytest.mark.anyio
    async def test_mention_of_bot_is_implicit(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(text="yes")
        provider = StubProvider(users={"10001": "CatBot"})
        config = make_config()
        controller = ChatController(providers={"qq": provider})
        plugin = Mfcat35Plugin(config)
        plugin.on_chat_ready(controller)
        message = make_message(
            [Element.at("10001"), Element.text(" are you there")], is_at_bot=True
        )

        reply = await controller.handle_incoming(message)

        assert httpx_mock.get_requests()[0].url.params["msg"] == "@CatBot are you there"
        assert reply == "yes"
        await plugin.on_disable()

    @pytest.mark.anyio
    async def test_group_message_without_prefix_ignored(self, setup, httpx_mock: HTTPXMock):
        provider, controller, _ = await setup()

        assert await controller.handle_incoming(text("hello")) is None
        assert httpx_mock.get_requests() == []
        assert provider.sent == []

    @pytest.mark.anyio
    async def test_message_without_content_ignored(self, setup, httpx_mock: HTTPXMock):
        provider, controller, _ = await setup()

        assert await controller.handle_incoming(make_message([], chat_type="private")) is None
        assert httpx_mock.get_requests() == []

    @pytest.mark.anyio
    async def test_empty_prefix_shadows_later_prefixes(self, setup, httpx_mock: HTTPXMock):
        httpx_mock.add_response(text="ok")
        _, controller, _ = await setup(prefix=["", ":"])

        await controller.handle_incoming(text(":x"))

        assert httpx_mock.get_requests()[0].url.params["msg"] == ":x"

    @pytest.mark.anyio
    async def test_implicit_trigger_yields_to_later_middleware(
        self, setup, httpx_mock: HTTPXMock
    ):
        provider, controller, _ = await setup()

        @controller.middleware
        async def other(ctx, call_next):
            return "handled elsewhere"

        reply = await controller.handle_incoming(text("hello", chat_type="private"))

        assert reply == "handled elsewhere"
        assert httpx_mock.get_requests() == []

    @pytest.mark.anyio
    async def test_explicit_trigger_preempts_later_middleware(
        self, setup, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_response(text="from api")
        _, controller, _ = await setup()

        @controller.middleware
        async def other(ctx, call_next):
            return "handled elsewhere"

        assert await controller.handle_incoming(text(":hello")) == "from api"

    @pytest.mark.anyio
    async def test_prefix_only_sends_nothing(self, setup, httpx_mock: HTTPXMock):
        provider, controller, _ = await setup()

        assert await controller.handle_incoming(text("：")) is None
        assert httpx_mock.get_requests() == []
        assert provider.sent == []


class TestFailures:
    @pytest.mark.anyio
    async def test_failure_suppressed_for_prefix_trigger(self, setup, httpx_mock: HTTPXMock):
        httpx_mock.add_response(text="Error: quota exceeded")
        provider, controller, _ = await setup()

        assert await controller.handle_incoming(text(":hello")) is None
        assert provider.sent == []

    @pytest.mark.anyio
    async def test_failure_shown_for_typed_command(self, setup, httpx_mock: HTTPXMock):
        httpx_mock.add_response(text="Error: quota exceeded")
        provider, controller, _ = await setup()

        reply = await controller.handle_incoming(text("mfcat35 hello"))

        assert httpx_mock.get_requests()[0].url.params["msg"] == "hello"
        assert reply == "Error: quota exceeded"
        assert provider.sent == [("Error: quota exceeded", "group:20001")]

    @pytest.mark.anyio
    async def test_typed_command_without_text_shows_usage(self, setup, httpx_mock: HTTPXMock):
        _, controller, _ = await setup()

        reply = await controller.handle_incoming(text("mfcat35"))

        assert reply == "Usage: mfcat35 <text>"
        assert httpx_mock.get_requests() == []

    @pytest.mark.anyio
    async def test_http_error_drops_message(self, setup, httpx_mock: HTTPXMock):
        httpx_mock.add_response(status_code=503)
        provider, controller, _ = await setup()

        assert await controller.handle_incoming(text(":hello")) is None
        assert provider.sent == []
