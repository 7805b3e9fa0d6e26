"""Structured chat message elements.

Incoming messages are represented as a tree of :class:`Element` nodes. Each node
has a kind (``type``), a flat attribute mapping and an ordered list of children.
Leaf kinds such as ``text``, ``at`` or ``image`` usually have no children, while
container kinds (``a``, ``p``, ``message`` and unknown kinds) carry nested
content.

The module also converts OneBot 11 message payloads (segment arrays and raw CQ
code strings) into element trees, and provides the HTML-style escaping used for
outgoing replies.

Example:
    ```python
    elements = elements_from_onebot([
        {"type": "at", "data": {"qq": "10001"}},
        {"type": "text", "data": {"text": " hello"}},
        {"type": "image", "data": {"file": "a.png"}},
    ])
    # [Element(type='at', attrs={'id': '10001'}), Element(type='text', ...), ...]
    ```
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Any

from .logger import get_logger

logger = get_logger("elements")

CQ_CODE_PATTERN = re.compile(r"\[CQ:([A-Za-z0-9_.\-]+)((?:,[^\]]*)?)\]")


@dataclass
class Element:
    """A single node of a structured chat message.

    Attributes:
        type: Element kind, e.g. ``"text"``, ``"at"``, ``"image"``.
        attrs: Element attributes (mention id, link href, emoji name, ...).
        children: Ordered child elements for container kinds.
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    children: list[Element] = field(default_factory=list)

    def get(self, key: str, default: Any = None) -> Any:
        """Return an attribute value, treating None as missing."""
        value = self.attrs.get(key)
        return default if value is None else value

    @classmethod
    def text(cls, content: str) -> Element:
        """Create a text element."""
        return cls("text", {"content": content})

    @classmethod
    def at(
        cls,
        user_id: str | None = None,
        *,
        name: str | None = None,
        type: str | None = None,
    ) -> Element:
        """Create a mention element.

        ``type`` is used for broadcast mentions such as ``"all"``.
        """
        attrs: dict[str, Any] = {}
        if user_id is not None:
            attrs["id"] = str(user_id)
        if name:
            attrs["name"] = name
        if type:
            attrs["type"] = type
        return cls("at", attrs)


def escape(text: str) -> str:
    """Escape markup-significant characters (``&``, ``<`` and ``>``; quotes are left as is)."""
    return html.escape(text, quote=False)


def unescape(text: str) -> str:
    """Reverse :func:`escape`."""
    return html.unescape(text)


def to_plain_text(elements: list[Element]) -> str:
    """Concatenate the text content of an element tree, ignoring everything else."""
    parts: list[str] = []
    for element in elements:
        if element.type == "text":
            parts.append(element.get("content", ""))
        else:
            parts.append(to_plain_text(element.children))
    return "".join(parts)


# ==============================================================================
# OneBot 11 conversion
# ==============================================================================


def _cq_unescape(value: str, in_param: bool = False) -> str:
    value = value.replace("&#91;", "[").replace("&#93;", "]")
    if in_param:
        value = value.replace("&#44;", ",")
    return value.replace("&amp;", "&")


def parse_cq_string(raw: str) -> list[dict[str, Any]]:
    """Split a raw CQ-code string into OneBot 11 segment dictionaries.

    Args:
        raw: Message string such as ``"hi [CQ:at,qq=123] there"``.

    Returns:
        List of segments in ``{"type": ..., "data": {...}}`` form.
    """
    segments: list[dict[str, Any]] = []
    position = 0

    for match in CQ_CODE_PATTERN.finditer(raw):
        if match.start() > position:
            segments.append(
                {"type": "text", "data": {"text": _cq_unescape(raw[position : match.start()])}}
            )

        data: dict[str, str] = {}
        params = match.group(2)
        if params:
            for item in params[1:].split(","):
                key, sep, value = item.partition("=")
                if sep:
                    data[key] = _cq_unescape(value, in_param=True)
        segments.append({"type": match.group(1), "data": data})
        position = match.end()

    if position < len(raw):
        segments.append({"type": "text", "data": {"text": _cq_unescape(raw[position:])}})

    return segments


def _forward_node_to_element(node: dict[str, Any]) -> Element:
    """Convert one inline forwarded message into a ``message`` element."""
    sender = node.get("sender") or {}
    data = node.get("data") or {}
    author_id = sender.get("user_id", data.get("user_id", data.get("uin", "")))
    author_name = sender.get("card") or sender.get("nickname") or data.get("nickname", "")
    content = node.get("message", data.get("content", []))

    children = [Element("author", {"id": str(author_id), "name": author_name})]
    children.extend(elements_from_onebot(content))
    return Element("message", {}, children)


def element_from_segment(segment: dict[str, Any]) -> Element | None:
    """Convert a single OneBot 11 segment into an element.

    Unknown segment kinds keep their own type so they sanitize to their
    (usually empty) children instead of being dropped silently.

    Args:
        segment: Segment dictionary with ``type`` and ``data`` keys.

    Returns:
        Element, or None when the segment is malformed.
    """
    if not isinstance(segment, dict) or "type" not in segment:
        logger.debug("Skipping malformed segment: %r", segment)
        return None

    seg_type = str(segment["type"])
    data = segment.get("data") or {}

    if seg_type == "text":
        return Element.text(str(data.get("text", "")))

    if seg_type == "at":
        qq = str(data.get("qq", ""))
        if qq == "all":
            return Element.at(type="all")
        return Element.at(qq, name=data.get("name"))

    if seg_type == "face":
        attrs = {"id": str(data.get("id", ""))}
        if data.get("name"):
            attrs["name"] = data["name"]
        return Element("face", attrs)

    if seg_type == "mface":
        summary = str(data.get("summary", "")).strip("[]")
        attrs = {"id": str(data.get("emoji_id", ""))}
        if summary:
            attrs["name"] = summary
        return Element("face", attrs)

    if seg_type == "image":
        return Element("image", {"src": data.get("url") or data.get("file", "")})

    if seg_type == "record":
        return Element("audio", {"src": data.get("url") or data.get("file", "")})

    if seg_type == "video":
        return Element("video", {"src": data.get("url") or data.get("file", "")})

    if seg_type == "file":
        return Element(
            "file", {"src": data.get("url") or data.get("file", ""), "name": data.get("name")}
        )

    if seg_type == "reply":
        return Element("quote", {"id": str(data.get("id", ""))})

    if seg_type == "share":
        title = data.get("title") or data.get("url", "")
        return Element("a", {"href": data.get("url", "")}, [Element.text(str(title))])

    if seg_type == "forward":
        content = data.get("content")
        children = []
        if isinstance(content, list):
            children = [
                _forward_node_to_element(node) for node in content if isinstance(node, dict)
            ]
        return Element("message", {"id": str(data.get("id", "")), "forward": True}, children)

    if seg_type == "node":
        return _forward_node_to_element({"data": data, "message": data.get("content", [])})

    return Element(seg_type, dict(data))


def elements_from_onebot(message: list[dict[str, Any]] | str | None) -> list[Element]:
    """Convert a OneBot 11 ``message`` field into an element list.

    Args:
        message: Segment array, raw CQ string, or None.

    Returns:
        Ordered list of elements.
    """
    if message is None:
        return []
    if isinstance(message, str):
        message = parse_cq_string(message)
    if not isinstance(message, list):
        return [Element.text(str(message))]

    elements: list[Element] = []
    for segment in message:
        element = element_from_segment(segment)
        if element is not None:
            elements.append(element)
    return elements
