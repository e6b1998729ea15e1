"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from food_analyst.adapters.openai_vision_client import OpenAIVisionClient
from food_analyst.adapters.supabase_kv_store import SupabaseKeyValueStore
from food_analyst.adapters.telegram_client import HttpxTelegramClient, TelegramClient
from food_analyst.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from food_analyst.config import Settings
from food_analyst.services.analysis import PhotoAnalysisService
from food_analyst.services.associations import MessageAssociationIndex
from food_analyst.services.conversations import ConversationService
from food_analyst.services.corrections import CorrectionEngine
from food_analyst.services.dashboard import DashboardService
from food_analyst.services.goals import GoalStore
from food_analyst.services.interpreter import CorrectionInterpreter
from food_analyst.services.ledger import NutritionLedger
from food_analyst.services.storage import KeyValueStore
from food_analyst.services.summaries import SummaryService
from food_analyst.services.users import UserDirectory
from food_analyst.services.vision import VisionClient, VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    ledger: NutritionLedger
    goal_store: GoalStore
    user_directory: UserDirectory
    analysis_service: PhotoAnalysisService
    correction_engine: CorrectionEngine
    conversation_service: ConversationService
    summary_service: SummaryService
    dashboard_service: DashboardService
    close_resources: Callable[[], Awaitable[None]]


def wire_services(  # noqa: PLR0913
    settings: Settings,
    store: KeyValueStore,
    telegram_client: TelegramClient,
    telegram_file_client: TelegramFileClient,
    vision_client: VisionClient,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Build the service graph on top of concrete adapters."""
    ledger = NutritionLedger(store, timezone_name=settings.timezone)
    goal_store = GoalStore(store, per_scope=settings.goals_per_scope)
    associations = MessageAssociationIndex(store)
    user_directory = UserDirectory(store)
    vision_service = VisionService(
        client=vision_client,
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
    )
    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        ledger=ledger,
        goal_store=goal_store,
        user_directory=user_directory,
        analysis_service=PhotoAnalysisService(
            vision_service, ledger, goal_store, associations
        ),
        correction_engine=CorrectionEngine(
            ledger, associations, CorrectionInterpreter(), goal_store
        ),
        conversation_service=ConversationService(
            store, goal_store, timeout_seconds=settings.conversation_timeout_seconds
        ),
        summary_service=SummaryService(ledger, goal_store),
        dashboard_service=DashboardService(ledger, goal_store, user_directory),
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    store = SupabaseKeyValueStore(
        supabase_client, table=resolved_settings.supabase_state_table
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    vision_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()

    return wire_services(
        resolved_settings,
        store,
        telegram_client,
        telegram_file_client,
        vision_client,
        close_resources,
    )
