"""Tests for the voice pipeline."""

import asyncio

import pytest

from tests.conftest import FakeFoodParserClient, FakeTranscriber
from voice_nutrition.domain.errors import (
    EntitlementExceededError,
    NoFoodDetectedError,
    PipelineBusyError,
    RateLimitedError,
    TranscriptionEmptyError,
)
from voice_nutrition.services.entitlements import EntitlementService
from voice_nutrition.services.pipeline import VoicePipeline
from voice_nutrition.services.store import InMemoryKeyValueStore
from voice_nutrition.services.tracking import SESSION_START_PREFIX, SessionTracker


def test_process_recording_reconciles_items(
    pipeline: VoicePipeline,
    tracker: SessionTracker,
    entitlements: EntitlementService,
) -> None:
    result = asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))

    rice, chicken = result.items
    assert rice.gram_equivalent == 370
    assert chicken.needs_cooking_modal is False
    assert chicken.needs_quantity_modal is True
    assert result.needs_review is True
    assert entitlements.current_usage("user-1").used == 1

    history = tracker.session_history()
    assert len(history) == 1
    assert history[0].final_foods_count == 2
    assert history[0].user_needed_modal is True
    assert history[0].total_tokens == 1500


def test_process_transcript_skips_transcription(
    pipeline: VoicePipeline, transcriber: FakeTranscriber
) -> None:
    result = asyncio.run(pipeline.process_transcript("كوب شاي"))

    assert result.transcript == "كوب شاي"
    assert transcriber.calls == 0


def test_no_food_raises_and_closes_session(
    pipeline: VoicePipeline,
    parser_client: FakeFoodParserClient,
    tracker: SessionTracker,
    entitlements: EntitlementService,
) -> None:
    parser_client.payload = {"foods": []}

    with pytest.raises(NoFoodDetectedError):
        asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))

    assert tracker.session_history()[0].performance_notes == ["no_food"]
    assert entitlements.current_usage("user-1").used == 0


def test_parse_failure_raises_domain_error(
    pipeline: VoicePipeline, parser_client: FakeFoodParserClient
) -> None:
    parser_client.errors = [RateLimitedError("limit"), RateLimitedError("limit")]

    with pytest.raises(RateLimitedError):
        asyncio.run(pipeline.process_transcript("رز"))


def test_empty_transcript_closes_session(
    pipeline: VoicePipeline, transcriber: FakeTranscriber, tracker: SessionTracker
) -> None:
    transcriber.text = ""

    with pytest.raises(TranscriptionEmptyError):
        asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))

    assert len(tracker.session_history()) == 1


def test_quota_is_checked_before_transcribing(
    pipeline: VoicePipeline,
    transcriber: FakeTranscriber,
    entitlements: EntitlementService,
) -> None:
    for _ in range(10):
        entitlements.record_usage("user-1")

    with pytest.raises(EntitlementExceededError):
        asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))
    assert transcriber.calls == 0


def test_parallel_recordings_cannot_exceed_quota(
    pipeline: VoicePipeline,
    transcriber: FakeTranscriber,
    entitlements: EntitlementService,
) -> None:
    for _ in range(9):
        entitlements.record_usage("user-1")

    async def scenario() -> list[object]:
        transcriber.gate = asyncio.Event()
        tasks = [
            asyncio.create_task(
                pipeline.process_recording(
                    b"audio", user_id="user-1", recording_id=f"r{index}"
                )
            )
            for index in range(3)
        ]
        await asyncio.sleep(0)
        transcriber.gate.set()
        return await asyncio.gather(*tasks, return_exceptions=True)

    results = asyncio.run(scenario())

    rejected = [r for r in results if isinstance(r, EntitlementExceededError)]
    assert len(rejected) == 2
    assert transcriber.calls == 1
    assert entitlements.current_usage("user-1").used == 10


def test_failed_recording_releases_quota(
    pipeline: VoicePipeline,
    transcriber: FakeTranscriber,
    entitlements: EntitlementService,
) -> None:
    transcriber.errors = [RateLimitedError("limit"), RateLimitedError("limit")]

    with pytest.raises(RateLimitedError):
        asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))

    assert entitlements.current_usage("user-1").used == 0


def test_unexpected_error_closes_session(
    pipeline: VoicePipeline,
    transcriber: FakeTranscriber,
    tracker: SessionTracker,
    store: InMemoryKeyValueStore,
) -> None:
    transcriber.errors = [RuntimeError("boom")]

    with pytest.raises(RuntimeError):
        asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))

    history = tracker.session_history()
    assert history[0].performance_notes == ["failed: boom"]
    assert store.get(SESSION_START_PREFIX + history[0].session_id) is None


def test_unexpected_parse_error_closes_session(
    pipeline: VoicePipeline,
    parser_client: FakeFoodParserClient,
    tracker: SessionTracker,
) -> None:
    parser_client.errors = [RuntimeError("parser crashed")]

    with pytest.raises(RuntimeError):
        asyncio.run(pipeline.process_transcript("رز"))

    assert tracker.session_history()[0].performance_notes == [
        "failed: parser crashed"
    ]


def test_concurrent_recording_is_rejected(
    pipeline: VoicePipeline, transcriber: FakeTranscriber
) -> None:
    async def scenario() -> None:
        transcriber.gate = asyncio.Event()
        first = asyncio.create_task(
            pipeline.process_recording(b"audio", user_id="user-1", recording_id="r1")
        )
        await asyncio.sleep(0)
        with pytest.raises(PipelineBusyError):
            await pipeline.process_recording(
                b"audio", user_id="user-1", recording_id="r1"
            )
        transcriber.gate.set()
        await first

    asyncio.run(scenario())

    assert transcriber.calls == 1


def test_cancellation_marks_session_and_propagates(
    pipeline: VoicePipeline, transcriber: FakeTranscriber, tracker: SessionTracker
) -> None:
    async def scenario() -> None:
        transcriber.gate = asyncio.Event()
        task = asyncio.create_task(
            pipeline.process_recording(b"audio", user_id="user-1")
        )
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert tracker.session_history()[0].performance_notes == ["cancelled"]
    transcriber.gate = None
    asyncio.run(pipeline.process_recording(b"audio", user_id="user-1"))
