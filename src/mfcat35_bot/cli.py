"""Command-line interface for the mfcat35 bot."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .bot import Mfcat35Bot
from .chat.dispatcher import PromptDispatcher
from .chat.trigger import classify
from .core.config import BotConfig, PluginConfig, PluginSettingsConfig
from .core.elements import unescape
from .core.logger import get_logger, setup_logging
from .plugins.mfcat35 import Mfcat35Config

logger = get_logger("cli")

PLUGIN_NAME = "mfcat35"


def print_banner(config: BotConfig, args: argparse.Namespace) -> None:
    """Print a startup banner with configuration info."""
    console = Console()

    info = f"""
[bold]Mfcat35 Bot[/bold] [green]v{__version__}[/]
QQ chat replies from the mfcat 3.5 completion API.

[dim]----------------------------------------------------[/]
[bold]Config:[/bold] [yellow]{args.config}[/]
[bold]Napcat:[/bold] [yellow]{config.napcat.http_url}[/]
[bold]Events:[/bold] [yellow]http://{config.event_server.host}:{config.event_server.port}{config.event_server.path}[/]
[bold]Debug:[/bold]  [{"red" if args.debug else "green"}]{args.debug}[/]
"""

    panel = Panel(
        info,
        title="[bold white]Startup[/]",
        border_style="blue",
        expand=False,
    )

    console.print(panel)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mfcat35-bot",
        description="QQ chatbot answering through the mfcat 3.5 completion API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate default config
  mfcat35-bot init -o config.yaml

  # Start bot with config file
  mfcat35-bot start -c config.yaml --debug

  # Ask the API once, without QQ
  mfcat35-bot ask "what is the weather today"

  # See how a message would be triggered
  mfcat35-bot classify "：hello" --prefix "：" --prefix ":"
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
        help="Show program's version number and exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    start_parser = subparsers.add_parser("start", help="Start the bot")
    start_parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    start_parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug/verbose logging mode",
    )

    init_parser = subparsers.add_parser("init", help="Generate default configuration")
    init_parser.add_argument(
        "-o",
        "--output",
        default="config.yaml",
        help="Output config file path (default: config.yaml)",
    )
    init_parser.add_argument(
        "-f", "--force", action="store_true", help="Overwrite an existing file without asking"
    )

    ask_parser = subparsers.add_parser("ask", help="Send one prompt to the API and print the reply")
    ask_parser.add_argument("text", help="Text to send")
    ask_parser.add_argument(
        "-c",
        "--config",
        help="Configuration file supplying plugin settings (defaults are used otherwise)",
    )

    classify_parser = subparsers.add_parser(
        "classify", help="Show whether a message would trigger a reply"
    )
    classify_parser.add_argument("text", help="Sanitized message text")
    classify_parser.add_argument(
        "-p",
        "--prefix",
        action="append",
        dest="prefixes",
        help="Trigger prefix, in priority order; repeatable (default: the plugin's prefixes)",
    )
    classify_parser.add_argument(
        "--direct", action="store_true", help="Treat the message as a private chat"
    )
    classify_parser.add_argument(
        "--at", action="store_true", help="Treat the message as @mentioning the bot"
    )

    return parser


def _load_plugin_settings(config: BotConfig) -> Mfcat35Config:
    return Mfcat35Config.model_validate(config.plugins.get_plugin_settings(PLUGIN_NAME))


def cmd_start(args: argparse.Namespace) -> int:
    """Handle start command."""
    config_path = Path(args.config)

    if not config_path.exists():
        print(f"Error: Configuration file not found: {config_path}")
        print("Run 'mfcat35-bot init' to create a default configuration.")
        return 1

    try:
        config = BotConfig.from_yaml(config_path)
        if args.debug:
            config.logging.level = "DEBUG"
        print_banner(config, args)

        bot = Mfcat35Bot(config)
        asyncio.run(bot.run())
        return 0
    except KeyboardInterrupt:
        logger.info("Bot interrupted by user")
        return 0
    except Exception as e:
        logger.error("Error starting bot: %s", e, exc_info=True)
        return 1


def cmd_init(args: argparse.Namespace) -> int:
    """Handle init command."""
    output_path = Path(args.output)

    if output_path.exists() and not args.force:
        response = input(f"{output_path} already exists. Overwrite? (y/N): ")
        if response.lower() != "y":
            print("Cancelled.")
            return 0

    config = BotConfig(
        plugins=PluginConfig(
            plugin_settings=[
                PluginSettingsConfig(
                    plugin_name=PLUGIN_NAME,
                    settings=Mfcat35Config.generate_template(),
                )
            ]
        )
    )
    config.to_yaml(output_path)

    print(f"✓ Configuration file created: {output_path}")
    print("\nNext steps:")
    print(f"1. Edit {output_path} and set napcat.http_url and napcat.access_token")
    print("2. Point Napcat's HTTP event post at the event_server address")
    print(f"3. Start the bot: mfcat35-bot start --config {output_path}")

    return 0


def cmd_ask(args: argparse.Namespace) -> int:
    """Handle ask command."""
    console = Console()

    try:
        config = BotConfig.from_yaml(args.config) if args.config else BotConfig()
        setup_logging(config.logging)
        settings = _load_plugin_settings(config)
    except Exception as e:
        print(f"Error loading configuration: {e}")
        return 1

    async def ask() -> str:
        dispatcher = PromptDispatcher(
            settings,
            nickname=config.general.get_nickname(),
            timeout=config.http.timeout,
        )
        try:
            return await dispatcher.dispatch(args.text, root=True)
        finally:
            await dispatcher.aclose()

    try:
        reply = asyncio.run(ask())
    except httpx.HTTPError as e:
        print(f"✗ Request failed: {e}")
        return 1

    console.print(unescape(reply), markup=False, highlight=False)
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    """Handle classify command."""
    prefixes = args.prefixes if args.prefixes is not None else Mfcat35Config().prefix
    decision = classify(args.text, prefixes, is_direct=args.direct, was_addressed=args.at)

    table = Table(title="Trigger")
    table.add_column("Kind", style="cyan")
    table.add_column("Text")
    table.add_row(decision.kind.value, Text(repr(decision.text)))
    Console().print(table)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Optional sequence of CLI arguments (without the program name).

    Returns:
        Process exit code. 0 for success.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        raise SystemExit(0)

    handlers = {
        "start": cmd_start,
        "init": cmd_init,
        "ask": cmd_ask,
        "classify": cmd_classify,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
