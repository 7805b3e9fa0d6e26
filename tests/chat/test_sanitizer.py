"""Tests for flattening message elements into a prompt string."""

from __future__ import annotations

import pytest

from conftest import StubProvider, make_context, make_message
from mfcat35_bot.chat.sanitizer import resolve_mention_name, sanitize_input
from mfcat35_bot.core.elements import Element


async def sanitize(elements, provider=None, chat_type="group") -> str:
    ctx = make_context(make_message(elements, chat_type=chat_type), provider)
    return await sanitize_input(elements, ctx)


class TestPlaceholders:
    """Media and layout elements become fixed placeholders."""

    @pytest.mark.anyio
    async def test_text_and_image(self):
        elements = [Element.text("look "), Element("image", {"src": "a.png"})]

        assert await sanitize(elements) == "look [Image]"

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            ("image", "[Image]"),
            ("img", "[Image]"),
            ("audio", "[Audio message]"),
            ("video", "[Video]"),
            ("file", "[Attachment]"),
        ],
    )
    async def test_media_placeholders(self, kind, expected):
        elements = [Element.text("a"), Element(kind), Element.text("b")]

        assert await sanitize(elements) == f"a{expected}b"

    @pytest.mark.anyio
    async def test_br_is_newline(self):
        elements = [Element.text("one"), Element("br"), Element.text("two")]

        assert await sanitize(elements) == "one\ntwo"

    @pytest.mark.anyio
    async def test_media_children_are_ignored(self):
        elements = [Element("image", {}, [Element.text("caption")])]

        assert await sanitize(elements) == "[Image]"


class TestStructuredElements:
    """Container and reference elements."""

    @pytest.mark.anyio
    async def test_link(self):
        elements = [Element("a", {"href": "https://x.y"}, [Element.text("site")])]

        assert await sanitize(elements) == "[site](https://x.y)"

    @pytest.mark.anyio
    async def test_paragraph_and_message_blocks(self):
        elements = [
            Element.text("before"),
            Element("p", {}, [Element.text("para")]),
            Element("message", {}, [Element.text("quoted")]),
        ]

        assert await sanitize(elements) == "before\npara\n\nquoted"

    @pytest.mark.anyio
    async def test_forwarded_message_with_author(self):
        elements = [
            Element(
                "message",
                {},
                [Element("author", {"id": "1", "name": "Bob"}), Element.text("hi")],
            )
        ]

        assert await sanitize(elements) == "Bob said: hi"

    @pytest.mark.anyio
    async def test_author_falls_back_to_id(self):
        assert await sanitize([Element("author", {"id": "42"})]) == "42 said:"

    @pytest.mark.anyio
    async def test_sharp(self):
        elements = [Element("sharp", {"id": "c1", "name": "general"}), Element.text(" hi")]

        assert await sanitize(elements) == "#general hi"

    @pytest.mark.anyio
    async def test_face_with_and_without_name(self):
        elements = [Element("face", {"id": "1", "name": "smile"}), Element("face", {"id": "2"})]

        assert await sanitize(elements) == "[smile Emoji][Emoji]"

    @pytest.mark.anyio
    async def test_unknown_kind_contributes_children_only(self):
        elements = [
            Element("quote", {"id": "9"}),
            Element("custom", {"x": "1"}, [Element.text("inner")]),
        ]

        assert await sanitize(elements) == "inner"

    @pytest.mark.anyio
    async def test_result_is_trimmed(self):
        elements = [Element.text("  "), Element("p", {}, [Element.text("x")]), Element.text(" ")]

        assert await sanitize(elements) == "x"

    @pytest.mark.anyio
    async def test_single_text_only_trimmed(self):
        assert await sanitize([Element.text("  hi <b> &amp; @x  ")]) == "hi <b> &amp; @x"

    @pytest.mark.anyio
    async def test_sanitizing_twice_is_stable(self):
        provider = StubProvider(users={"1": "Alice"})
        elements = [
            Element.text(" hey "),
            Element.at("1"),
            Element("image"),
            Element("a", {"href": "https://x.y"}, [Element.text("site")]),
        ]

        once = await sanitize(elements, provider)

        assert once == "hey @Alice[Image][site](https://x.y)"
        assert await sanitize([Element.text(once)], provider) == once

    @pytest.mark.anyio
    async def test_no_elements_is_empty(self):
        assert await sanitize([]) == ""


class TestMentions:
    """Mention name resolution order."""

    @pytest.mark.anyio
    @pytest.mark.parametrize("users", [{"1": "Alice"}, {}])
    async def test_mention_type_wins(self, users):
        provider = StubProvider(users=users, members={("20001", "1"): "Ally"})

        assert await sanitize([Element.at("1", type="here")], provider) == "@here"
        assert provider.user_lookups == []
        assert provider.member_lookups == []

    @pytest.mark.anyio
    async def test_broadcast_mention_without_id(self):
        assert await sanitize([Element.at(type="all")], StubProvider()) == "@all"

    @pytest.mark.anyio
    async def test_user_name_lookup(self):
        provider = StubProvider(users={"1": "Alice"}, members={("20001", "1"): "Ally"})
        elements = [Element.at("1"), Element.text(" hi")]

        assert await sanitize(elements, provider) == "@Alice hi"
        assert provider.member_lookups == []

    @pytest.mark.anyio
    async def test_member_lookup_after_user_lookup_fails(self):
        provider = StubProvider(members={("20001", "1"): "Ally"})

        assert await sanitize([Element.at("1")], provider) == "@Ally"
        assert provider.user_lookups == ["1"]

    @pytest.mark.anyio
    async def test_no_member_lookup_in_private_chat(self):
        provider = StubProvider(members={("", "1"): "Ally"})

        result = await sanitize([Element.at("1", name="Hint")], provider, chat_type="private")

        assert result == "@Hint"
        assert provider.member_lookups == []

    @pytest.mark.anyio
    async def test_failed_lookups_fall_back_to_name_then_id(self):
        provider = StubProvider()

        assert await sanitize([Element.at("1", name="Hint")], provider) == "@Hint"
        assert await sanitize([Element.at("1")], provider) == "@1"

    @pytest.mark.anyio
    async def test_without_resolver(self):
        element = Element.at("7", name="Seven")
        ctx = make_context(make_message([element]))

        assert await resolve_mention_name(element, ctx) == "Seven"
