"""Tests for container wiring."""

import asyncio

from voice_nutrition.adapters.openai_food_parser_client import OpenAIFoodParserClient
from voice_nutrition.config import Settings
from voice_nutrition.containers import build_container, build_store
from voice_nutrition.services.store import InMemoryKeyValueStore


def test_build_container_creates_services(settings: Settings) -> None:
    store = InMemoryKeyValueStore()
    container = build_container(settings, store=store)

    assert container.store is store
    assert container.tracker.store is store
    assert container.pipeline.entitlements is container.entitlement_service
    assert isinstance(container.parsing_service.client, OpenAIFoodParserClient)
    assert container.parsing_service.model == "gpt-4o"
    asyncio.run(container.close_resources())


def test_build_container_reads_unlimited_users(settings: Settings) -> None:
    settings = settings.model_copy(update={"unlimited_user_ids": "a, b"})
    container = build_container(settings, store=InMemoryKeyValueStore())

    assert container.entitlement_service.unlimited_user_ids == {"a", "b"}
    asyncio.run(container.close_resources())


def test_build_store_defaults_to_memory(settings: Settings) -> None:
    assert isinstance(build_store(settings), InMemoryKeyValueStore)
