"""Speech-to-text service."""

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from voice_nutrition.domain.errors import AIServiceError, TranscriptionEmptyError
from voice_nutrition.services.retry import call_with_retry
from voice_nutrition.services.tracking import SessionTracker

_logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    """Interface for speech-to-text clients."""

    async def transcribe(
        self, *, model: str, audio: bytes, filename: str, language: str | None
    ) -> str:
        """Return the transcript of an audio recording."""


@dataclass
class TranscriptionService:
    """Transcribes recordings and reports each call to the tracker."""

    client: Transcriber
    model: str
    tracker: SessionTracker | None = None
    language: str | None = "ar"
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def transcribe(self, audio: bytes, filename: str = "recording.m4a") -> str:
        """Return the transcript, raising when no speech was recognized."""
        if not audio:
            raise TranscriptionEmptyError("Recording is empty")
        started = time.perf_counter()
        try:
            text = await call_with_retry(
                lambda: self.client.transcribe(
                    model=self.model,
                    audio=audio,
                    filename=filename,
                    language=self.language,
                ),
                action="transcribe",
                retry_attempts=self.retry_attempts,
                retry_delay_seconds=self.retry_delay_seconds,
            )
        except AIServiceError:
            self._track(started, success=False)
            raise
        self._track(started, success=True)

        transcript = text.strip()
        if not transcript:
            raise TranscriptionEmptyError(
                "No speech detected in the recording. Please try again."
            )
        _logger.info("Transcribed %s bytes into %s chars", len(audio), len(transcript))
        return transcript

    def _track(self, started: float, *, success: bool) -> None:
        if self.tracker is None:
            return
        latency_ms = (time.perf_counter() - started) * 1000
        self.tracker.track_model_call(self.model, latency_ms, success=success)
