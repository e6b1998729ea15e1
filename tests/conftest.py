"""Shared test fixtures."""

import json
from dataclasses import dataclass, field

import pytest

from food_analyst.adapters.telegram_client import TelegramClient
from food_analyst.config import Settings
from food_analyst.containers import AppContainer, wire_services
from food_analyst.domain.nutrition import FoodEntry
from food_analyst.errors import StorageUnavailableError
from food_analyst.services.goals import GoalStore
from food_analyst.services.ledger import NutritionLedger
from food_analyst.services.storage import InMemoryKeyValueStore, KeyValueStore
from food_analyst.services.vision import VisionClient


@dataclass
class SentMessage:
    """A message recorded by the fake Telegram client."""

    chat_id: int | str
    text: str
    message_id: int
    reply_to_message_id: int | None = None


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages and hands out ids."""

    messages: list[SentMessage] = field(default_factory=list)
    edits: list[tuple[int | str, int, str]] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None
    next_message_id: int = 500
    fail_for_chat: set[str] = field(default_factory=set)

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
    ) -> int:
        if str(chat_id) in self.fail_for_chat:
            raise RuntimeError("chat not found")
        self.next_message_id += 1
        self.messages.append(
            SentMessage(chat_id, text, self.next_message_id, reply_to_message_id)
        )
        return self.next_message_id

    async def edit_message_text(
        self,
        chat_id: int | str,
        message_id: int,
        text: str,
        parse_mode: str | None = None,
    ) -> None:
        self.edits.append((chat_id, message_id, text))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button

    def texts(self) -> list[str]:
        return [message.text for message in self.messages]


@dataclass
class FakeTelegramFileClient:
    """Fake Telegram file client that returns static bytes."""

    content: bytes = b"\xff\xd8\xfffake-jpeg"
    requested: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def download_file_bytes(self, file_id: str) -> bytes:
        self.requested.append(file_id)
        if self.error is not None:
            raise self.error
        return self.content


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed JSON payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "food_name": "Grilled chicken salad",
            "calories": 350,
            "protein": 30,
            "carbs": 12,
            "fat": 18,
            "fiber": 4,
            "hydration": 150,
            "serving_size": "1 bowl",
            "confidence": "high",
        }
    )
    raw: str | None = None
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return self.raw
        return json.dumps(self.payload)


@dataclass
class FailingKeyValueStore(KeyValueStore):
    """Store whose backend is always down."""

    async def get(self, key: str) -> object | None:
        raise StorageUnavailableError("get", key)

    async def set(self, key: str, value: object) -> None:
        raise StorageUnavailableError("set", key)

    async def delete(self, key: str) -> None:
        raise StorageUnavailableError("delete", key)


def entry(name: str = "Apple", calories: float = 95, **overrides) -> FoodEntry:  # type: ignore[no-untyped-def]
    """Build a food entry with sensible defaults."""
    values: dict[str, object] = {
        "food_name": name,
        "calories": calories,
        "protein": 0.5,
        "carbs": 25,
        "fat": 0.3,
    }
    values.update(overrides)
    return FoodEntry(**values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="4242:test-token",
        telegram_chat_id="-100500",
        developer_chat_id="777",
        supabase_url="https://example.supabase.co",
        supabase_service_key="test.service.key",
        admin_token="admin-token",
        openai_api_key="openai-key",
        environment="test",
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def ledger(store: InMemoryKeyValueStore) -> NutritionLedger:
    return NutritionLedger(store)


@pytest.fixture
def goal_store(store: InMemoryKeyValueStore) -> GoalStore:
    return GoalStore(store)


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def telegram_file_client() -> FakeTelegramFileClient:
    return FakeTelegramFileClient()


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    store: InMemoryKeyValueStore,
    telegram_client: FakeTelegramClient,
    telegram_file_client: FakeTelegramFileClient,
    vision_client: FakeVisionClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return wire_services(
        settings,
        store,
        telegram_client,
        telegram_file_client,
        vision_client,
        close_resources,
    )
