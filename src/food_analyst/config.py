"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    telegram_chat_id: str | None = None
    developer_chat_id: str | None = None
    supabase_url: str
    supabase_service_key: str
    supabase_state_table: str = "bot_state"
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "low"
    openai_store: bool = False
    timezone: str = "UTC"
    goals_per_scope: bool = False
    conversation_timeout_seconds: int = 300
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_chat_id(raw: str | None) -> int | None:
    """Parse a Telegram chat id from env, ignoring blanks and junk."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned.startswith("-"):
        digits = cleaned[1:]
        return -int(digits) if digits.isdigit() else None
    return int(cleaned) if cleaned.isdigit() else None


def is_chat_allowed(chat_id: int, chat_type: str, configured_chat_id: int | None) -> bool:
    """Private chats are always served; other chats only when configured."""
    if chat_type == "private":
        return True
    return configured_chat_id is not None and chat_id == configured_chat_id


def bot_user_id(token: str) -> int | None:
    """Return the bot's own user id, the numeric prefix of its API token."""
    prefix, separator, _ = token.partition(":")
    if not separator or not prefix.isdigit():
        return None
    return int(prefix)
