"""Flatten structured message elements into a plain-text prompt.

Every element kind has a substitution rule; container kinds are flattened
recursively and unknown kinds contribute only their children. Mentions are
resolved to display names through the session's name resolver, falling back
through the element's own attributes when lookups fail.

| Kind          | Output                                   |
|---------------|------------------------------------------|
| text          | content as-is                            |
| at            | ``@name``                                |
| author        | ``name said: ``                          |
| sharp         | ``#name``                                |
| a             | ``[children](href)``                     |
| image / img   | ``[Image]``                              |
| audio         | ``[Audio message]``                      |
| video         | ``[Video]``                              |
| file          | ``[Attachment]``                         |
| br            | newline                                  |
| p / message   | children surrounded by newlines          |
| face          | ``[name Emoji]`` or ``[Emoji]``          |
| anything else | children                                 |
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..core.elements import Element
from ..core.logger import get_logger

if TYPE_CHECKING:
    from .controller import ChatContext

logger = get_logger("chat.sanitizer")

ElementRule = Callable[[Element, "ChatContext"], Awaitable[list[str]]]

PLACEHOLDERS: dict[str, str] = {
    "image": "[Image]",
    "img": "[Image]",
    "audio": "[Audio message]",
    "video": "[Video]",
    "file": "[Attachment]",
    "br": "\n",
}


async def _lookup(kind: str, fetch: Callable[[], Awaitable[str]]) -> str:
    """Run a name lookup, mapping any failure to an empty result."""
    try:
        return await fetch() or ""
    except Exception as e:
        logger.debug("%s lookup failed: %s", kind, e)
        return ""


async def resolve_mention_name(element: Element, ctx: ChatContext) -> str:
    """Resolve the display name for a mention element.

    Candidates, first non-empty wins: the element's ``type`` (``all`` and
    similar), the user's name, the group member's name (group chats only),
    the element's ``name`` attribute, and finally its raw ``id``.
    """
    mention_type = element.get("type")
    if mention_type:
        return mention_type

    user_id = element.get("id", "")
    resolver = ctx.resolver
    if resolver is not None and user_id:
        name = await _lookup("user", lambda: resolver.get_user_name(user_id))
        if name:
            return name
        if not ctx.is_direct:
            name = await _lookup(
                "guild member",
                lambda: resolver.get_guild_member_name(ctx.guild_id, user_id),
            )
            if name:
                return name

    return element.get("name") or user_id


async def _at(element: Element, ctx: ChatContext) -> list[str]:
    return [f"@{await resolve_mention_name(element, ctx)}"]


async def _author(element: Element, ctx: ChatContext) -> list[str]:
    return [f"{element.get('name') or element.get('id', '')} said: "]


async def _sharp(element: Element, ctx: ChatContext) -> list[str]:
    return [f"#{element.get('name') or element.get('id', '')}"]


async def _link(element: Element, ctx: ChatContext) -> list[str]:
    children = await sanitize_elements(element.children, ctx)
    return ["[", *children, "](", element.get("href", ""), ")"]


async def _block(element: Element, ctx: ChatContext) -> list[str]:
    children = await sanitize_elements(element.children, ctx)
    return ["\n", *children, "\n"]


async def _face(element: Element, ctx: ChatContext) -> list[str]:
    name = element.get("name")
    return [f"[{name} Emoji]" if name else "[Emoji]"]


async def _text(element: Element, ctx: ChatContext) -> list[str]:
    return [element.get("content", "")]


RULES: dict[str, ElementRule] = {
    "text": _text,
    "at": _at,
    "author": _author,
    "sharp": _sharp,
    "a": _link,
    "p": _block,
    "message": _block,
    "face": _face,
}


async def sanitize_element(element: Element, ctx: ChatContext) -> list[str]:
    """Flatten a single element into text fragments."""
    placeholder = PLACEHOLDERS.get(element.type)
    if placeholder is not None:
        return [placeholder]

    rule = RULES.get(element.type)
    if rule is not None:
        return await rule(element, ctx)

    return await sanitize_elements(element.children, ctx)


async def sanitize_elements(elements: list[Element], ctx: ChatContext) -> list[str]:
    """Flatten a sequence of elements into text fragments, preserving order."""
    fragments: list[str] = []
    for element in elements:
        fragments.extend(await sanitize_element(element, ctx))
    return fragments


async def sanitize_input(elements: list[Element], ctx: ChatContext) -> str:
    """Flatten a message into a trimmed prompt string.

    An empty result means the message carries nothing to respond to.
    """
    return "".join(await sanitize_elements(elements, ctx)).strip()
