"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request

from food_analyst.api.admin import router as admin_router
from food_analyst.api.dashboard import router as dashboard_router
from food_analyst.api.telegram_models import (
    TelegramMessage,
    TelegramPhotoSize,
    TelegramUpdate,
)
from food_analyst.app_logging import configure_logging
from food_analyst.config import bot_user_id, is_chat_allowed, parse_chat_id
from food_analyst.containers import AppContainer
from food_analyst.domain.conversations import ConversationState
from food_analyst.errors import StorageUnavailableError, VisionAnalysisError
from food_analyst.formatting import (
    format_correction_confirmation,
    format_entries,
    format_entry_analysis,
    format_goals,
    format_leaderboard,
    format_recent_users,
    format_removal_confirmation,
)
from food_analyst.services.conversations import GOALS_FORMAT_ERROR
from food_analyst.services.corrections import CorrectionOutcome, CorrectionStatus
from food_analyst.services.goals import parse_goals_text
from food_analyst.telegram_commands import (
    CHAT_MENU_BUTTON,
    parse_command,
    telegram_commands,
)

_logger = logging.getLogger(__name__)

ANALYZING_TEXT = "🔍 Analyzing your food..."
ANALYSIS_FAILED_TEXT = "❌ Sorry, I had trouble analyzing that image. Please try again."
DOWNLOAD_FAILED_TEXT = "❌ Sorry, I couldn't download that photo. Please try again."
STORAGE_FAILED_TEXT = (
    "⚠️ I couldn't reach my storage just now, so nothing was changed. "
    "Please try again in a moment."
)
NO_ENTRIES_TEXT = "📭 No food entries recorded today."

START_TEXT = (
    "👋 Welcome to Food Analyst Bot!\n\n"
    "📸 Send me a photo of your food and I'll analyze its nutritional content.\n\n"
    "✏️ Reply to my analysis to correct it, or reply \"remove\" to delete it.\n\n"
    "📋 For available commands, type /help"
)
HELP_TEXT = (
    "🤖 Food Analyst Bot Commands\n\n"
    "📸 Food Analysis:\n"
    "Send a photo of your food to get nutritional information.\n"
    "Reply to an analysis with a correction (e.g. \"500ml coke\") or with "
    "\"remove\" to delete it.\n\n"
    "📋 Tracking Commands:\n"
    "/goals - Set your daily nutrition goals\n"
    "/summary - Get today's nutrition summary\n"
    "/progress - Check your progress toward goals\n"
    "/entries - List today's entries\n"
    "/remove <number> - Remove an entry from today's list\n"
    "/leaderboard - See today's leaderboard\n\n"
    "📬 Feedback:\n"
    "/feedback - Send bug reports or suggestions to the developer\n"
    "/cancel - Cancel the current dialog\n\n"
    "ℹ️ Usage Tips:\n"
    "- Works in both direct messages and channel posts\n"
    "- Goals format: calories protein carbs fat [fiber hydration]\n"
    "- Example: /goals 2000 150 250 70"
)

_CORRECTION_FAILURES = {
    CorrectionStatus.NO_ASSOCIATION: (
        "❌ I couldn't find the analysis behind that message. "
        "It may have been removed already."
    ),
    CorrectionStatus.ENTRY_NOT_FOUND: (
        "❌ That entry is no longer in your log, so there is nothing to change."
    ),
    CorrectionStatus.STORAGE_UNAVAILABLE: STORAGE_FAILED_TEXT,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    configured_chat_id = parse_chat_id(container.settings.telegram_chat_id)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.telegram_client.set_my_commands(
                telegram_commands()
            )
            await app.state.container.telegram_client.set_chat_menu_button(
                CHAT_MENU_BUTTON
            )
        except Exception:
            _logger.exception("Failed to sync Telegram bot commands")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)
    app.include_router(dashboard_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(update: TelegramUpdate, request: Request) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        message = update.effective_message
        if message is None:
            return {"status": "ok"}
        if not is_chat_allowed(message.chat.id, message.chat.type, configured_chat_id):
            _logger.info("Ignoring update from unauthorized chat %s", message.chat.id)
            return {"status": "ok"}
        try:
            await _dispatch(state_container, message)
        except Exception:
            _logger.exception(
                "Unhandled error processing update %s", update.update_id
            )
        return {"status": "ok"}

    return app


async def _dispatch(container: AppContainer, message: TelegramMessage) -> None:
    """Route one authorized message to the matching flow."""
    scope_id = str(message.chat.id)
    await _remember_sender(container, scope_id, message)
    if message.photo:
        await _handle_photo(container, scope_id, message)
        return
    try:
        await _handle_text(container, scope_id, message)
    except StorageUnavailableError as exc:
        _logger.warning("Storage unavailable for message %s: %s", message.message_id, exc)
        await _reply(container, message, STORAGE_FAILED_TEXT)


async def _handle_text(
    container: AppContainer, scope_id: str, message: TelegramMessage
) -> None:
    """Commands first, then an active dialog, then reply corrections."""
    command = parse_command(message.text)
    if command is not None:
        name, args = command
        await _handle_command(container, scope_id, message, name, args)
        return
    if not message.text:
        return
    reply = await container.conversation_service.handle_text(scope_id, message.text)
    if reply is not None:
        await _reply(container, message, reply.text)
        if reply.feedback:
            await _forward_feedback(container, message, reply.feedback)
        return
    if _is_reply_to_bot(message, bot_user_id(container.settings.telegram_bot_token)):
        await _handle_correction(container, scope_id, message)


async def _remember_sender(
    container: AppContainer, scope_id: str, message: TelegramMessage
) -> None:
    sender = message.from_user
    if sender is not None:
        display_name, username = sender.full_name, sender.username
    else:
        chat = message.sender_chat or message.chat
        display_name, username = chat.title, chat.username
    try:
        await container.user_directory.touch(scope_id, display_name, username)
    except StorageUnavailableError:
        _logger.warning("Could not record profile for scope %s", scope_id)


async def _handle_photo(
    container: AppContainer, scope_id: str, message: TelegramMessage
) -> None:
    """Analyze a food photo, log it and reply with the analysis."""
    await _reply(container, message, ANALYZING_TEXT)
    photo = _select_largest_photo(message.photo or [])
    try:
        image_bytes = await container.telegram_file_client.download_file_bytes(
            photo.file_id
        )
    except Exception as exc:
        _logger.exception(
            "Failed to download Telegram photo", extra={"file_id": photo.file_id}
        )
        await _reply(
            container, message, _format_error(container, exc, DOWNLOAD_FAILED_TEXT)
        )
        return

    try:
        result = await container.analysis_service.analyze_and_log(
            scope_id, image_bytes, message.caption
        )
    except VisionAnalysisError as exc:
        _logger.exception("Vision analysis failed", extra={"file_id": photo.file_id})
        await _reply(
            container, message, _format_error(container, exc, ANALYSIS_FAILED_TEXT)
        )
        return
    except StorageUnavailableError:
        _logger.warning("Storage unavailable while logging photo in %s", scope_id)
        await _reply(container, message, STORAGE_FAILED_TEXT)
        return

    sent_message_id = await _reply(
        container,
        message,
        format_entry_analysis(result.entry, result.totals, result.goals),
    )
    try:
        await container.analysis_service.remember_message(sent_message_id, result)
    except StorageUnavailableError:
        _logger.warning(
            "Could not record association for message %s; replies to it "
            "will not be correctable",
            sent_message_id,
        )


async def _handle_correction(
    container: AppContainer, scope_id: str, message: TelegramMessage
) -> None:
    """Apply a reply to one of our analysis messages."""
    target = message.reply_to_message
    if target is None or not message.text:
        return
    outcome = await container.correction_engine.handle_reply(
        scope_id, target.message_id, message.text
    )
    if not outcome.succeeded:
        await _reply(container, message, _CORRECTION_FAILURES[outcome.status])
        return
    if outcome.status is CorrectionStatus.REMOVED:
        await _reply(container, message, _removal_text(outcome))
        return
    await _edit_analysis(container, message.chat.id, target.message_id, outcome)
    await _reply(container, message, format_correction_confirmation(outcome.entry))


async def _edit_analysis(
    container: AppContainer, chat_id: int, message_id: int, outcome: CorrectionOutcome
) -> None:
    if outcome.entry is None or outcome.totals is None or outcome.goals is None:
        return
    try:
        await container.telegram_client.edit_message_text(
            chat_id=chat_id,
            message_id=message_id,
            text=format_entry_analysis(
                outcome.entry, outcome.totals, outcome.goals, corrected=True
            ),
        )
    except Exception:
        _logger.exception("Failed to edit analysis message %s", message_id)


async def _handle_command(  # noqa: PLR0911, PLR0912
    container: AppContainer,
    scope_id: str,
    message: TelegramMessage,
    name: str,
    args: str,
) -> None:
    """Run a slash command."""
    if name == "start":
        await _reply(container, message, START_TEXT)
        return
    if name == "help":
        await _reply(container, message, HELP_TEXT)
        return
    if name == "goals":
        await _handle_goals_command(container, scope_id, message, args)
        return
    if name == "summary":
        summary = await container.summary_service.daily_summary(scope_id)
        await _reply(container, message, summary or NO_ENTRIES_TEXT)
        return
    if name == "progress":
        await _reply(
            container,
            message,
            await container.summary_service.progress_report(scope_id),
        )
        return
    if name == "entries":
        day = container.ledger.today()
        entries = await container.ledger.list_entries(scope_id, day)
        await _reply(container, message, format_entries(day, entries))
        return
    if name == "remove":
        await _handle_remove_command(container, scope_id, message, args)
        return
    if name == "leaderboard":
        entries = await container.dashboard_service.leaderboard()
        await _reply(container, message, format_leaderboard(entries))
        return
    if name == "feedback":
        prompt = await container.conversation_service.begin(
            scope_id, ConversationState.AWAITING_FEEDBACK
        )
        await _reply(container, message, prompt)
        return
    if name == "cancel":
        cancelled = await container.conversation_service.cancel(scope_id)
        await _reply(container, message, cancelled or "Nothing to cancel.")
        return
    if name == "users":
        await _handle_users_command(container, message)


async def _handle_goals_command(
    container: AppContainer, scope_id: str, message: TelegramMessage, args: str
) -> None:
    if not args:
        prompt = await container.conversation_service.begin(
            scope_id, ConversationState.AWAITING_GOALS
        )
        await _reply(container, message, prompt)
        return
    goals = parse_goals_text(args, await container.goal_store.get(scope_id))
    if goals is None:
        await _reply(container, message, GOALS_FORMAT_ERROR)
        return
    await container.goal_store.set(scope_id, goals)
    await _reply(
        container, message, f"✅ Nutrition goals updated!\n\n{format_goals(goals)}"
    )


async def _handle_remove_command(
    container: AppContainer, scope_id: str, message: TelegramMessage, args: str
) -> None:
    if not args.isdigit() or int(args) < 1:
        await _reply(
            container,
            message,
            "Usage: /remove <number>\nUse /entries to see the numbers.",
        )
        return
    position = int(args)
    day = container.ledger.today()
    removed = await container.ledger.remove_by_index(scope_id, day, position - 1)
    if removed is None:
        await _reply(container, message, f"❌ There is no entry #{position} today.")
        return
    totals = await container.ledger.aggregate(scope_id, day)
    goals = await container.goal_store.get(scope_id)
    await _reply(container, message, format_removal_confirmation(removed, totals, goals))


async def _handle_users_command(
    container: AppContainer, message: TelegramMessage
) -> None:
    developer_chat_id = parse_chat_id(container.settings.developer_chat_id)
    sender = message.from_user
    if developer_chat_id is None or sender is None or sender.id != developer_chat_id:
        return
    profiles = await container.user_directory.recent(limit=10)
    await container.telegram_client.send_message(
        chat_id=developer_chat_id, text=format_recent_users(profiles)
    )


async def _forward_feedback(
    container: AppContainer, message: TelegramMessage, feedback: str
) -> None:
    sender = message.from_user
    if sender is not None:
        who = sender.full_name or sender.username or f"User {sender.id}"
        sender_id = sender.id
    else:
        who = message.chat.title or f"Chat {message.chat.id}"
        sender_id = message.chat.id
    developer_chat_id = parse_chat_id(container.settings.developer_chat_id)
    if developer_chat_id is None:
        _logger.info("Feedback from %s (%s): %s", who, sender_id, feedback)
        return
    text = (
        "📬 New Feedback\n\n"
        f"From: {who} ({sender_id})\n"
        f"Date: {datetime.now(tz=UTC).strftime('%Y-%m-%d %H:%M UTC')}\n\n"
        f"📝 Message:\n{feedback}"
    )
    try:
        await container.telegram_client.send_message(
            chat_id=developer_chat_id, text=text
        )
    except Exception:
        _logger.exception("Failed to forward feedback from %s", sender_id)


async def _reply(container: AppContainer, message: TelegramMessage, text: str) -> int:
    return await container.telegram_client.send_message(
        chat_id=message.chat.id, text=text, reply_to_message_id=message.message_id
    )


def _removal_text(outcome: CorrectionOutcome) -> str:
    if outcome.entry is None or outcome.totals is None or outcome.goals is None:
        return "🗑️ Entry removed."
    return format_removal_confirmation(outcome.entry, outcome.totals, outcome.goals)


def _is_reply_to_bot(message: TelegramMessage, bot_id: int | None) -> bool:
    """Replies to our own messages; channel posts by the bot carry no sender."""
    target = message.reply_to_message
    if target is None:
        return False
    if target.from_user is None:
        return True
    return bot_id is not None and target.from_user.id == bot_id


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))


def _format_error(state_container: AppContainer, exc: Exception, fallback: str) -> str:
    """Return a user-facing error message with local debug info."""
    if state_container.settings.environment == "local":
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail:
            return f"{fallback} (debug: {detail})"
    return fallback
