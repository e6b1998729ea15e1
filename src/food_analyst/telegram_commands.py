"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str


class BotCommand(Enum):
    """Enum of bot commands (single source of truth)."""

    START = TelegramCommand("start", "Welcome and quick start")
    HELP = TelegramCommand("help", "List available commands")
    GOALS = TelegramCommand("goals", "Set your daily nutrition goals")
    SUMMARY = TelegramCommand("summary", "Today's nutrition summary")
    PROGRESS = TelegramCommand("progress", "Progress toward your goals")
    ENTRIES = TelegramCommand("entries", "List today's entries")
    REMOVE = TelegramCommand("remove", "Remove an entry by its number")
    LEADERBOARD = TelegramCommand("leaderboard", "Today's leaderboard")
    FEEDBACK = TelegramCommand("feedback", "Send feedback to the developer")
    CANCEL = TelegramCommand("cancel", "Cancel the active dialog")


HIDDEN_COMMANDS = frozenset({"users"})


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]


def parse_command(text: str | None) -> tuple[str, str] | None:
    """Split "/name@bot args" into ("name", "args"); None for plain text."""
    if not text or not text.startswith("/"):
        return None
    head, _, args = text.strip().partition(" ")
    name = head[1:].split("@", maxsplit=1)[0].lower()
    if not name:
        return None
    return name, args.strip()


CHAT_MENU_BUTTON: dict[str, object] = {"type": "commands"}
