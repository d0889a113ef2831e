"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from supabase import create_client

from voice_nutrition.adapters.openai_food_parser_client import OpenAIFoodParserClient
from voice_nutrition.adapters.openai_transcription_client import (
    OpenAITranscriptionClient,
)
from voice_nutrition.adapters.supabase_kv_store import SupabaseKeyValueStore
from voice_nutrition.config import Settings, parse_unlimited_user_ids
from voice_nutrition.services.daily_logs import DailyLogService
from voice_nutrition.services.entitlements import EntitlementService
from voice_nutrition.services.food_parsing import FoodParsingService
from voice_nutrition.services.pipeline import VoicePipeline
from voice_nutrition.services.reconciler import ConfidenceReconciler
from voice_nutrition.services.rescaler import NutritionRescaler
from voice_nutrition.services.rules import load_override_rules, load_unit_table
from voice_nutrition.services.store import InMemoryKeyValueStore, KeyValueStore
from voice_nutrition.services.tracking import SessionTracker
from voice_nutrition.services.transcription import TranscriptionService
from voice_nutrition.services.units import UnitConverter

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: KeyValueStore
    unit_converter: UnitConverter
    reconciler: ConfidenceReconciler
    rescaler: NutritionRescaler
    tracker: SessionTracker
    transcription_service: TranscriptionService
    parsing_service: FoodParsingService
    pipeline: VoicePipeline
    daily_log_service: DailyLogService
    entitlement_service: EntitlementService
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> KeyValueStore:
    """Use Supabase when configured, otherwise keep data in memory."""
    if settings.supabase_url and settings.supabase_service_key:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseKeyValueStore(client)
    _logger.warning("Supabase is not configured, using the in-memory store")
    return InMemoryKeyValueStore()


def build_container(
    settings: Settings | None = None, store: KeyValueStore | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    resolved_store = store or build_store(resolved_settings)

    unit_converter = UnitConverter(
        load_unit_table(resolved_settings.unit_categories_path)
    )
    reconciler = ConfidenceReconciler(
        rules=load_override_rules(resolved_settings.override_rules_path),
        unit_converter=unit_converter,
    )
    rescaler = NutritionRescaler(
        unit_converter=unit_converter, strict=resolved_settings.strict_rescaling
    )
    tracker = SessionTracker(
        store=resolved_store, history_limit=resolved_settings.session_history_limit
    )

    http_client = httpx.AsyncClient(timeout=resolved_settings.openai_timeout_seconds)
    transcription_service = TranscriptionService(
        client=OpenAITranscriptionClient.create(
            resolved_settings.openai_api_key, http_client=http_client
        ),
        model=resolved_settings.transcription_model,
        tracker=tracker,
        language=resolved_settings.transcription_language,
        retry_attempts=resolved_settings.retry_attempts,
        retry_delay_seconds=resolved_settings.retry_delay_seconds,
    )
    parsing_service = FoodParsingService(
        client=OpenAIFoodParserClient.create(
            resolved_settings.openai_api_key,
            store=resolved_settings.openai_store,
            http_client=http_client,
        ),
        model=resolved_settings.nutrition_model,
        tracker=tracker,
        retry_attempts=resolved_settings.retry_attempts,
        retry_delay_seconds=resolved_settings.retry_delay_seconds,
    )
    entitlement_service = EntitlementService(
        store=resolved_store,
        unlimited_user_ids=parse_unlimited_user_ids(
            resolved_settings.unlimited_user_ids
        ),
    )
    pipeline = VoicePipeline(
        transcription_service=transcription_service,
        parsing_service=parsing_service,
        reconciler=reconciler,
        tracker=tracker,
        entitlements=entitlement_service,
    )
    daily_log_service = DailyLogService(
        store=resolved_store,
        default_calorie_goal=resolved_settings.default_calorie_goal,
    )

    async def close_resources() -> None:
        await http_client.aclose()

    return AppContainer(
        settings=resolved_settings,
        store=resolved_store,
        unit_converter=unit_converter,
        reconciler=reconciler,
        rescaler=rescaler,
        tracker=tracker,
        transcription_service=transcription_service,
        parsing_service=parsing_service,
        pipeline=pipeline,
        daily_log_service=daily_log_service,
        entitlement_service=entitlement_service,
        close_resources=close_resources,
    )
