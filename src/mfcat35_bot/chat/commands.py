"""Chat command table.

Commands take the whole remaining text as a single argument
(``mfcat35 what is the weather today``). A command runs either because the user
typed it (a *root* invocation) or because a middleware executes it on the
user's behalf.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.logger import get_logger

if TYPE_CHECKING:
    from .controller import ChatContext

logger = get_logger("chat.commands")

# (ctx, text, root) -> result
CommandFunc = Callable[["ChatContext | None", str, bool], Awaitable["CommandResult"]]

_COMMAND_RE = re.compile(r"(\S+)(?:\s+(.*))?", re.DOTALL)


@dataclass
class CommandResult:
    """Result of command execution.

    Attributes:
        success: Whether the command executed successfully
        response: Response text to send back to the user (may be empty)
        data: Additional data returned by the command handler
    """

    success: bool
    response: str
    data: dict[str, Any] | None = None


class CommandHandler:
    """Registry and dispatcher for chat commands.

    Example:
        ```python
        handler = CommandHandler()

        @handler.register("echo", "Repeat the text")
        async def echo(ctx, text, root):
            return CommandResult(True, text)

        match = handler.match("echo hi there")
        if match:
            result = await handler.execute(*match, ctx, root=True)
        ```
    """

    def __init__(self, command_prefix: str = "") -> None:
        """Initialize command handler.

        Args:
            command_prefix: Prefix the user must type before a command name
        """
        self.prefix = command_prefix
        self._commands: dict[str, CommandFunc] = {}
        self._descriptions: dict[str, str] = {}

        logger.debug("CommandHandler initialized with prefix=%r", self.prefix)

    @property
    def commands(self) -> dict[str, str]:
        """Registered command names mapped to their descriptions."""
        return dict(self._descriptions)

    def register(self, name: str, description: str = "") -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to register a command.

        Raises:
            ValueError: If the name is empty, contains whitespace, or is taken
        """

        def decorator(func: CommandFunc) -> CommandFunc:
            cmd_lower = name.lower()

            if not cmd_lower or any(ch.isspace() for ch in cmd_lower):
                raise ValueError(f"Invalid command name: {name!r}")

            if cmd_lower in self._commands:
                raise ValueError(f"Command '{cmd_lower}' is already registered")

            self._commands[cmd_lower] = func
            self._descriptions[cmd_lower] = description
            logger.info("Registered command: %s", cmd_lower)
            return func

        return decorator

    def unregister(self, name: str) -> bool:
        """Remove a command. Returns False if it was not registered."""
        cmd_lower = name.lower()
        if cmd_lower not in self._commands:
            return False
        del self._commands[cmd_lower]
        del self._descriptions[cmd_lower]
        logger.info("Unregistered command: %s", cmd_lower)
        return True

    def has(self, name: str) -> bool:
        return name.lower() in self._commands

    def match(self, text: str) -> tuple[str, str] | None:
        """Match text against the registered commands.

        Args:
            text: Plain message text

        Returns:
            Tuple of (command_name, argument_text), or None if no command matches

        Example:
            ```python
            handler.match("mfcat35  hello world")  # ("mfcat35", "hello world")
            handler.match("hello")                 # None
            ```
        """
        text = text.strip()
        if not text.startswith(self.prefix):
            return None

        match = _COMMAND_RE.fullmatch(text[len(self.prefix) :])
        if not match:
            return None

        name = match.group(1).lower()
        if name not in self._commands:
            return None
        return name, (match.group(2) or "").strip()

    async def execute(
        self,
        name: str,
        text: str,
        ctx: ChatContext | None = None,
        root: bool = False,
    ) -> CommandResult:
        """Run a registered command.

        Args:
            name: Command name
            text: Argument text
            ctx: Chat context of the triggering message
            root: True when the user typed the command directly

        Raises:
            KeyError: If the command is not registered
        """
        func = self._commands[name.lower()]
        logger.debug("Executing command %s (root=%s)", name, root)
        return await func(ctx, text, root)
