"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from voice_nutrition.config import Settings
from voice_nutrition.containers import AppContainer
from voice_nutrition.domain.foods import RawFoodItem
from voice_nutrition.services.daily_logs import DailyLogService
from voice_nutrition.services.entitlements import EntitlementService
from voice_nutrition.services.food_parsing import (
    FoodParserClient,
    FoodParsingService,
    ParserReply,
)
from voice_nutrition.services.pipeline import VoicePipeline
from voice_nutrition.services.reconciler import ConfidenceReconciler
from voice_nutrition.services.rescaler import NutritionRescaler
from voice_nutrition.services.rules import load_override_rules, load_unit_table
from voice_nutrition.services.store import InMemoryKeyValueStore, KeyValueStore
from voice_nutrition.services.tracking import SessionTracker
from voice_nutrition.services.transcription import Transcriber, TranscriptionService
from voice_nutrition.services.units import UnitConverter


def food_payload(**overrides: object) -> dict[str, object]:
    """Return one parser food item in the model's camelCase shape."""
    payload: dict[str, object] = {
        "name": "رز",
        "quantity": 2,
        "unit": "cups",
        "calories": 410,
        "protein": 8.4,
        "carbs": 89.2,
        "fat": 0.8,
        "cookingMethod": None,
        "confidence": 0.8,
        "needsQuantity": False,
        "needsCookingMethod": False,
        "suggestedQuantity": [],
        "suggestedCookingMethods": [],
        "nutritionNotes": None,
    }
    payload.update(overrides)
    return payload


def raw_item(**overrides: object) -> RawFoodItem:
    return RawFoodItem.model_validate(food_payload(**overrides))


@dataclass
class FakeTranscriber(Transcriber):
    """Fake transcriber returning fixed text."""

    text: str = "اكلت كوبين رز و دجاج مشوي"
    errors: list[Exception] = field(default_factory=list)
    gate: asyncio.Event | None = None
    calls: int = 0

    async def transcribe(
        self, *, model: str, audio: bytes, filename: str, language: str | None
    ) -> str:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.errors:
            raise self.errors.pop(0)
        return self.text


@dataclass
class FakeFoodParserClient(FoodParserClient):
    """Fake parser client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                food_payload(),
                food_payload(
                    name="دجاج مشوي",
                    quantity=150,
                    unit="grams",
                    calories=248,
                    protein=46.5,
                    carbs=0,
                    fat=5.4,
                    cookingMethod="grilled",
                    confidence=0.9,
                    needsQuantity=True,
                ),
            ]
        }
    )
    errors: list[Exception] = field(default_factory=list)
    input_tokens: int = 1200
    output_tokens: int = 300
    calls: int = 0
    last_transcript: str | None = None

    async def parse(
        self,
        *,
        model: str,
        prompt: str,
        transcript: str,
        schema: dict[str, object],
    ) -> ParserReply:
        self.calls += 1
        self.last_transcript = transcript
        if self.errors:
            raise self.errors.pop(0)
        return ParserReply(
            payload=self.payload,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


@dataclass
class FailingStore(KeyValueStore):
    """Store whose every call fails."""

    def get(self, key: str) -> object | None:
        raise RuntimeError("store unavailable")

    def set(self, key: str, value: object) -> None:
        raise RuntimeError("store unavailable")

    def delete(self, key: str) -> None:
        raise RuntimeError("store unavailable")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        admin_token="admin-token",
        supabase_url=None,
        supabase_service_key=None,
        unlimited_user_ids=None,
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def unit_converter() -> UnitConverter:
    return UnitConverter(load_unit_table())


@pytest.fixture
def reconciler(unit_converter: UnitConverter) -> ConfidenceReconciler:
    return ConfidenceReconciler(
        rules=load_override_rules(), unit_converter=unit_converter
    )


@pytest.fixture
def rescaler(unit_converter: UnitConverter) -> NutritionRescaler:
    return NutritionRescaler(unit_converter=unit_converter)


@pytest.fixture
def tracker(store: InMemoryKeyValueStore) -> SessionTracker:
    return SessionTracker(store=store)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def parser_client() -> FakeFoodParserClient:
    return FakeFoodParserClient()


@pytest.fixture
def entitlements(store: InMemoryKeyValueStore) -> EntitlementService:
    return EntitlementService(store=store)


@pytest.fixture
def pipeline(  # noqa: PLR0913
    transcriber: FakeTranscriber,
    parser_client: FakeFoodParserClient,
    reconciler: ConfidenceReconciler,
    tracker: SessionTracker,
    entitlements: EntitlementService,
    settings: Settings,
) -> VoicePipeline:
    return VoicePipeline(
        transcription_service=TranscriptionService(
            client=transcriber,
            model=settings.transcription_model,
            tracker=tracker,
            retry_delay_seconds=0,
        ),
        parsing_service=FoodParsingService(
            client=parser_client,
            model=settings.nutrition_model,
            tracker=tracker,
            retry_delay_seconds=0,
        ),
        reconciler=reconciler,
        tracker=tracker,
        entitlements=entitlements,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    store: InMemoryKeyValueStore,
    unit_converter: UnitConverter,
    reconciler: ConfidenceReconciler,
    rescaler: NutritionRescaler,
    tracker: SessionTracker,
    pipeline: VoicePipeline,
    entitlements: EntitlementService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        unit_converter=unit_converter,
        reconciler=reconciler,
        rescaler=rescaler,
        tracker=tracker,
        transcription_service=pipeline.transcription_service,
        parsing_service=pipeline.parsing_service,
        pipeline=pipeline,
        daily_log_service=DailyLogService(store=store),
        entitlement_service=entitlements,
        close_resources=close_resources,
    )
