"""Tests for Telegram webhook handling."""

import asyncio

from fastapi.testclient import TestClient

from food_analyst.api.app import (
    ANALYSIS_FAILED_TEXT,
    ANALYZING_TEXT,
    DOWNLOAD_FAILED_TEXT,
    NO_ENTRIES_TEXT,
    STORAGE_FAILED_TEXT,
    create_app,
)
from food_analyst.containers import AppContainer, wire_services
from food_analyst.services.conversations import GOALS_PROMPT
from tests.conftest import (
    FailingKeyValueStore,
    FakeTelegramClient,
    FakeTelegramFileClient,
    FakeVisionClient,
)

PHOTO_SIZES = [
    {"file_id": "small", "file_unique_id": "small-unique", "width": 64, "height": 64},
    {"file_id": "large", "file_unique_id": "large-unique", "width": 256, "height": 256},
]
BOT_USER = {"id": 4242, "is_bot": True, "first_name": "Food Analyst"}


def _message(  # noqa: PLR0913
    message_id: int,
    text: str | None = None,
    *,
    chat_id: int = 99,
    chat_type: str = "private",
    sender: dict[str, object] | None = None,
    photo: list[dict[str, object]] | None = None,
    reply_to: dict[str, object] | None = None,
) -> dict[str, object]:
    message: dict[str, object] = {
        "message_id": message_id,
        "date": 1700000000,
        "chat": {"id": chat_id, "type": chat_type},
        "from": sender or {"id": 123, "is_bot": False, "first_name": "Test"},
    }
    if text is not None:
        message["text"] = text
    if photo is not None:
        message["photo"] = photo
    if reply_to is not None:
        message["reply_to_message"] = reply_to
    return message


def _post(client: TestClient, message: dict[str, object], update_id: int = 1) -> None:
    response = client.post(
        "/telegram/webhook", json={"update_id": update_id, "message": message}
    )
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def _reply_to_bot(message_id: int, text: str, target_id: int) -> dict[str, object]:
    return _message(
        message_id,
        text,
        reply_to=_message(target_id, "🍽️ analysis", sender=BOT_USER),
    )


def _log_photo(client: TestClient, telegram_client: FakeTelegramClient) -> int:
    _post(client, _message(20, photo=PHOTO_SIZES))
    return telegram_client.messages[-1].message_id


def test_photo_is_analyzed_logged_and_associated(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    telegram_file_client: FakeTelegramFileClient,
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(20, photo=PHOTO_SIZES))

    assert telegram_file_client.requested == ["large"]
    notice, analysis = telegram_client.messages
    assert notice.text == ANALYZING_TEXT
    assert analysis.chat_id == 99
    assert analysis.reply_to_message_id == 20
    assert analysis.text.startswith("🍽️ Grilled chicken salad")
    assert "- Calories: 350/2000 kcal" in analysis.text
    entries = asyncio.run(container.ledger.list_entries("99"))
    assert [item.food_name for item in entries] == ["Grilled chicken salad"]
    association = asyncio.run(
        container.correction_engine.associations.resolve("99", analysis.message_id)
    )
    assert association is not None
    assert association.snapshot.entry_id == entries[0].entry_id


def test_photo_caption_reaches_vision_prompt(
    container: AppContainer, vision_client: FakeVisionClient
) -> None:
    client = TestClient(create_app(container))
    message = _message(20, photo=PHOTO_SIZES)
    message["caption"] = "oat latte"

    _post(client, message)

    assert '"oat latte"' in vision_client.prompts[0]


def test_vision_failure_replies_and_logs_nothing(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    vision_client: FakeVisionClient,
) -> None:
    vision_client.raw = "I cannot see any food here."
    client = TestClient(create_app(container))

    _post(client, _message(20, photo=PHOTO_SIZES))

    assert telegram_client.texts()[-1] == ANALYSIS_FAILED_TEXT
    assert asyncio.run(container.ledger.list_entries("99")) == []


def test_download_failure_replies(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    telegram_file_client: FakeTelegramFileClient,
) -> None:
    telegram_file_client.error = RuntimeError("file expired")
    client = TestClient(create_app(container))

    _post(client, _message(20, photo=PHOTO_SIZES))

    assert telegram_client.texts()[-1] == DOWNLOAD_FAILED_TEXT


def test_reply_correction_edits_analysis(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))
    analysis_id = _log_photo(client, telegram_client)

    _post(client, _reply_to_bot(21, "500ml coke", analysis_id), update_id=2)

    chat_id, edited_id, text = telegram_client.edits[-1]
    assert (chat_id, edited_id) == (99, analysis_id)
    assert text.startswith("🍽️ Coke")
    assert "Updated based on user correction" in text
    assert telegram_client.texts()[-1].startswith("✅ Analysis updated successfully!")
    entries = asyncio.run(container.ledger.list_entries("99"))
    assert entries[0].calories == 280
    assert entries[0].hydration == 150


def test_reply_remove_then_remove_again(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))
    analysis_id = _log_photo(client, telegram_client)

    _post(client, _reply_to_bot(21, "remove", analysis_id), update_id=2)

    assert telegram_client.texts()[-1].startswith("🗑️ Removed Grilled chicken salad")
    assert asyncio.run(container.ledger.list_entries("99")) == []

    _post(client, _reply_to_bot(22, "remove", analysis_id), update_id=3)

    assert "couldn't find" in telegram_client.texts()[-1]


def test_reply_to_human_message_is_ignored(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(21, "remove", reply_to=_message(5, "hello")))

    assert telegram_client.messages == []


def test_reply_to_another_bot_is_ignored(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))
    other_bot = {"id": 999, "is_bot": True, "first_name": "Weather Bot"}

    _post(client, _message(21, "hi", reply_to=_message(5, "Sunny", sender=other_bot)))

    assert telegram_client.messages == []


def test_unauthorized_group_is_ignored(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(20, "/start", chat_id=-1, chat_type="group"))

    assert telegram_client.messages == []


def test_channel_post_photo_is_analyzed(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))
    post = {
        "message_id": 30,
        "date": 1700000000,
        "chat": {"id": -100500, "type": "channel", "title": "Meals"},
        "photo": PHOTO_SIZES,
    }

    response = client.post("/telegram/webhook", json={"update_id": 5, "channel_post": post})

    assert response.status_code == 200
    assert telegram_client.messages[-1].chat_id == -100500
    assert len(asyncio.run(container.ledger.list_entries("-100500"))) == 1


def test_start_and_help(container: AppContainer, telegram_client: FakeTelegramClient) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(10, "/start"))
    _post(client, _message(11, "/help"), update_id=2)

    assert "Welcome to Food Analyst Bot" in telegram_client.texts()[0]
    assert "/remove <number>" in telegram_client.texts()[1]


def test_goals_inline_and_dialog(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(10, "/goals 1800 140 200 60"))

    assert telegram_client.texts()[-1].startswith("✅ Nutrition goals updated!")
    assert asyncio.run(container.goal_store.get("99")).calories == 1800

    _post(client, _message(11, "/goals"), update_id=2)
    assert telegram_client.texts()[-1] == GOALS_PROMPT

    _post(client, _message(12, "2100 150 260 70 30 2500"), update_id=3)

    goals = asyncio.run(container.goal_store.get("99"))
    assert goals.calories == 2100
    assert goals.hydration == 2500


def test_feedback_is_forwarded_to_developer(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(10, "/feedback"))
    _post(client, _message(11, "Totals look off"), update_id=2)

    forwarded = [message for message in telegram_client.messages if message.chat_id == 777]
    assert len(forwarded) == 1
    assert "Totals look off" in forwarded[0].text
    assert "From: Test (123)" in forwarded[0].text
    assert any("Thank you for your feedback" in text for text in telegram_client.texts())


def test_cancel_without_dialog(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(10, "/cancel"))

    assert telegram_client.texts()[-1] == "Nothing to cancel."


def test_entries_and_positional_remove(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))
    _log_photo(client, telegram_client)

    _post(client, _message(30, "/entries"), update_id=2)
    assert "1. Grilled chicken salad - 350 kcal" in telegram_client.texts()[-1]

    _post(client, _message(31, "/remove 5"), update_id=3)
    assert telegram_client.texts()[-1] == "❌ There is no entry #5 today."

    _post(client, _message(32, "/remove two"), update_id=4)
    assert telegram_client.texts()[-1].startswith("Usage: /remove")

    _post(client, _message(33, "/remove 1"), update_id=5)
    assert telegram_client.texts()[-1].startswith("🗑️ Removed Grilled chicken salad")
    assert asyncio.run(container.ledger.list_entries("99")) == []


def test_summary_progress_and_leaderboard(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(10, "/summary"))
    assert telegram_client.texts()[-1] == NO_ENTRIES_TEXT

    _log_photo(client, telegram_client)
    _post(client, _message(30, "/summary"), update_id=2)
    assert "1. Grilled chicken salad - 350 kcal" in telegram_client.texts()[-1]

    _post(client, _message(31, "/progress"), update_id=3)
    assert "📈 Nutrition Progress" in telegram_client.texts()[-1]

    _post(client, _message(32, "/leaderboard"), update_id=4)
    assert "🏆" in telegram_client.texts()[-1]


def test_users_command_is_developer_only(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    _post(client, _message(10, "/users"))
    assert telegram_client.messages == []

    developer = {"id": 777, "is_bot": False, "first_name": "Dev", "username": "dev"}
    _post(client, _message(11, "/users", chat_id=777, sender=developer), update_id=2)

    assert telegram_client.messages[-1].chat_id == 777
    assert "👥 Recent Users" in telegram_client.messages[-1].text


def test_storage_outage_gets_friendly_reply(settings) -> None:  # type: ignore[no-untyped-def]
    telegram_client = FakeTelegramClient()

    async def close_resources() -> None:
        return None

    container = wire_services(
        settings,
        FailingKeyValueStore(),
        telegram_client,
        FakeTelegramFileClient(),
        FakeVisionClient(),
        close_resources,
    )
    client = TestClient(create_app(container))

    _post(client, _message(10, "/summary"))
    _post(client, _message(11, photo=PHOTO_SIZES), update_id=2)

    assert telegram_client.texts()[0] == STORAGE_FAILED_TEXT
    assert telegram_client.texts()[-1] == STORAGE_FAILED_TEXT


def test_lifespan_syncs_commands(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    with TestClient(create_app(container)):
        pass

    assert telegram_client.commands is not None
    assert telegram_client.menu_button == {"type": "commands"}
