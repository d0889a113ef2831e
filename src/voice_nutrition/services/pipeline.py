"""Voice-to-food-list pipeline orchestration."""

import asyncio
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from voice_nutrition.domain.errors import (
    AIServiceError,
    PipelineBusyError,
    TranscriptionEmptyError,
    VoiceNutritionError,
)
from voice_nutrition.domain.foods import ReconciledFoodItem
from voice_nutrition.domain.parsing import ParseSuccess
from voice_nutrition.domain.tracking import SessionOutcome
from voice_nutrition.services.entitlements import EntitlementService
from voice_nutrition.services.food_parsing import FoodParsingService
from voice_nutrition.services.reconciler import ConfidenceReconciler
from voice_nutrition.services.tracking import SessionTracker, estimate_cost
from voice_nutrition.services.transcription import TranscriptionService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingResult:
    """Reconciled items ready for review."""

    session_id: str
    transcript: str
    items: list[ReconciledFoodItem]

    @property
    def needs_review(self) -> bool:
        return any(item.needs_clarification for item in self.items)


@dataclass
class VoicePipeline:
    """Runs transcription, parsing and reconciliation for one recording."""

    transcription_service: TranscriptionService
    parsing_service: FoodParsingService
    reconciler: ConfidenceReconciler
    tracker: SessionTracker
    entitlements: EntitlementService | None = None
    _in_flight: set[str] = field(default_factory=set, init=False, repr=False)

    async def process_recording(
        self,
        audio: bytes,
        *,
        user_id: str,
        recording_id: str | None = None,
        filename: str = "recording.m4a",
    ) -> ProcessingResult:
        """Transcribe and parse a recording, counting it against the quota.

        The recording is reserved against the quota before any external call
        and released again if processing does not produce a result.
        """
        if self.entitlements is not None:
            self.entitlements.reserve_action(user_id)
        try:
            with self._single_flight(recording_id or user_id):
                return await self._process_audio(audio, filename)
        except BaseException:
            if self.entitlements is not None:
                self.entitlements.release_action(user_id)
            raise

    async def process_transcript(self, transcript: str) -> ProcessingResult:
        """Parse typed text without transcription."""
        session_id = self.tracker.start_session(
            self.transcription_service.model, self.parsing_service.model
        )
        try:
            return await self._parse(session_id, transcript, transcription_ms=0.0)
        except asyncio.CancelledError:
            self._cancelled(session_id)
            raise
        except VoiceNutritionError:
            raise
        except Exception as exc:
            self._failed(session_id, exc)
            raise

    async def _process_audio(self, audio: bytes, filename: str) -> ProcessingResult:
        session_id = self.tracker.start_session(
            self.transcription_service.model, self.parsing_service.model
        )
        try:
            started = time.perf_counter()
            try:
                transcript = await self.transcription_service.transcribe(
                    audio, filename
                )
            except (TranscriptionEmptyError, AIServiceError) as exc:
                self.tracker.complete_session(
                    session_id,
                    SessionOutcome(
                        final_foods_count=0,
                        performance_notes=[f"transcription failed: {exc}"],
                    ),
                )
                raise
            transcription_ms = (time.perf_counter() - started) * 1000
            return await self._parse(
                session_id, transcript, transcription_ms=transcription_ms
            )
        except asyncio.CancelledError:
            self._cancelled(session_id)
            raise
        # Domain errors have already closed the session.
        except VoiceNutritionError:
            raise
        except Exception as exc:
            self._failed(session_id, exc)
            raise

    async def _parse(
        self, session_id: str, transcript: str, *, transcription_ms: float
    ) -> ProcessingResult:
        started = time.perf_counter()
        outcome = await self.parsing_service.parse(transcript)
        parsing_ms = (time.perf_counter() - started) * 1000
        if not isinstance(outcome, ParseSuccess):
            self.tracker.complete_session(
                session_id,
                SessionOutcome(
                    transcription_latency_ms=transcription_ms,
                    nutrition_latency_ms=parsing_ms,
                    final_foods_count=0,
                    performance_notes=[outcome.kind],
                ),
            )
            raise outcome.to_error()

        items = self.reconciler.build_items(outcome.items, self.parsing_service.model)
        result = ProcessingResult(
            session_id=session_id, transcript=transcript, items=items
        )
        cost = estimate_cost(
            self.transcription_service.model, transcription_ms
        ) + estimate_cost(
            self.parsing_service.model,
            parsing_ms,
            outcome.usage.input_tokens,
            outcome.usage.output_tokens,
        )
        self.tracker.complete_session(
            session_id,
            SessionOutcome(
                transcription_latency_ms=transcription_ms,
                nutrition_latency_ms=parsing_ms,
                total_tokens=outcome.usage.total,
                estimated_cost_usd=cost,
                user_needed_modal=result.needs_review,
                final_foods_count=len(items),
                avg_confidence=sum(item.overall_confidence for item in items)
                / len(items),
            ),
        )
        _logger.info(
            "Session %s produced %s items (review=%s)",
            session_id,
            len(items),
            result.needs_review,
        )
        return result

    def _cancelled(self, session_id: str) -> None:
        _logger.info("Session %s cancelled", session_id)
        self.tracker.complete_session(
            session_id, SessionOutcome(performance_notes=["cancelled"])
        )

    def _failed(self, session_id: str, exc: Exception) -> None:
        _logger.exception("Session %s failed", session_id)
        self.tracker.complete_session(
            session_id,
            SessionOutcome(final_foods_count=0, performance_notes=[f"failed: {exc}"]),
        )

    @contextmanager
    def _single_flight(self, key: str) -> Iterator[None]:
        if key in self._in_flight:
            raise PipelineBusyError(f"Recording {key} is already being processed")
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)
