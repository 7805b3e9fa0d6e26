"""Chat module: message routing and the prompt pipeline.

Key components:
- ChatController: routes messages through commands and middleware
- ChatContext: runtime context for a message interaction
- sanitize_input: flattens message elements into a prompt string
- classify: decides whether a message triggers a reply
- PromptDispatcher: calls the completion API and post-processes replies
"""

from .commands import CommandHandler, CommandResult
from .controller import ChatContext, ChatController, create_chat_controller
from .dispatcher import PromptDispatcher
from .sanitizer import sanitize_input
from .trigger import TriggerDecision, TriggerKind, classify

__all__ = [
    "ChatContext",
    "ChatController",
    "CommandHandler",
    "CommandResult",
    "PromptDispatcher",
    "TriggerDecision",
    "TriggerKind",
    "classify",
    "create_chat_controller",
    "sanitize_input",
]
