"""Decide whether a sanitized message should trigger a reply."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum


class TriggerKind(str, Enum):
    """How a message addressed the bot."""

    EXPLICIT = "explicit"  # matched a non-empty prefix
    IMPLICIT = "implicit"  # direct chat, @bot, or empty-prefix match
    NONE = "none"


@dataclass(frozen=True)
class TriggerDecision:
    """Classification result with the text left to send."""

    kind: TriggerKind
    text: str

    @property
    def triggered(self) -> bool:
        return self.kind is not TriggerKind.NONE


def classify(
    text: str,
    prefixes: Sequence[str],
    is_direct: bool = False,
    was_addressed: bool = False,
) -> TriggerDecision:
    """Classify a sanitized message.

    Prefixes are tried in order and the first one the text starts with wins.
    A non-empty prefix makes the trigger explicit and is stripped together with
    the whitespace after it. An empty prefix always matches, makes the trigger
    implicit and leaves the text untouched, so any prefix listed after it is
    never reached.

    Args:
        text: Sanitized, trimmed message text
        prefixes: Configured prefixes in priority order
        is_direct: Whether the message came from a private chat
        was_addressed: Whether the platform reports the bot as @mentioned

    Returns:
        TriggerDecision
    """
    implicit = is_direct or was_addressed
    explicit = False

    for prefix in prefixes:
        if text.startswith(prefix):
            if prefix:
                explicit = True
                text = text[len(prefix) :].lstrip()
            else:
                implicit = True
            break

    if explicit:
        return TriggerDecision(TriggerKind.EXPLICIT, text)
    if implicit:
        return TriggerDecision(TriggerKind.IMPLICIT, text)
    return TriggerDecision(TriggerKind.NONE, text)
