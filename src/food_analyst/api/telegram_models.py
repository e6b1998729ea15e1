"""Pydantic models for Telegram webhook payloads."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TelegramUser(BaseModel):
    """Telegram user payload."""

    id: int
    is_bot: bool | None = None
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None

    @property
    def full_name(self) -> str | None:
        """First and last name joined, or None when both are missing."""
        joined = " ".join(part for part in (self.first_name, self.last_name) if part)
        return joined or None


class TelegramChat(BaseModel):
    """Telegram chat payload."""

    id: int
    type: str
    title: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class TelegramPhotoSize(BaseModel):
    """Telegram photo size payload."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: int | None = None


class TelegramMessage(BaseModel):
    """Telegram message payload.

    Channel posts carry no sender, so `from` is optional.
    """

    message_id: int
    date: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    sender_chat: TelegramChat | None = None
    text: str | None = None
    caption: str | None = None
    photo: list[TelegramPhotoSize] | None = None
    reply_to_message: TelegramMessage | None = None


class TelegramUpdate(BaseModel):
    """Telegram update payload."""

    update_id: int
    message: TelegramMessage | None = None
    channel_post: TelegramMessage | None = None

    @property
    def effective_message(self) -> TelegramMessage | None:
        """The message or channel post carried by the update."""
        return self.message or self.channel_post
