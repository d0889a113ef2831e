"""Model usage tracking for offline latency, cost and accuracy analysis.

Tracking is best-effort: every public method logs and swallows its own
failures so that analytics can never break the logging pipeline.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import TypeAdapter

from voice_nutrition.domain.tracking import (
    ConfidencePoint,
    ModelPerformanceMetrics,
    ModelUsageSession,
    SessionOutcome,
    SessionSummary,
    UserCorrection,
)
from voice_nutrition.services.store import KeyValueStore

STATS_KEY = "tracking:model_stats"
HISTORY_KEY = "tracking:session_history"
CONFIDENCE_KEY = "tracking:confidence_accuracy"
CORRECTIONS_KEY = "tracking:user_corrections"
SESSION_START_PREFIX = "tracking:session_start:"

DEFAULT_HISTORY_LIMIT = 100
CONFIDENCE_HISTORY_LIMIT = 500
CORRECTION_HISTORY_LIMIT = 200
MODAL_CONFIDENCE_THRESHOLD = 0.6

# USD per minute of audio for transcription models, per 1K tokens otherwise.
MODEL_COSTS: dict[str, tuple[float, float]] = {
    "whisper": (0.006, 0.0),
    "whisper-1": (0.006, 0.0),
    "gpt-4o-audio": (0.100, 0.400),
    "gpt-4o": (0.0025, 0.01),
    "gpt-4o-mini": (0.00015, 0.0006),
    "gpt-5-nano": (0.002, 0.008),
}
_AUDIO_MODELS = {"whisper", "whisper-1", "gpt-4o-audio"}

_SESSIONS = TypeAdapter(list[ModelUsageSession])
_POINTS = TypeAdapter(list[ConfidencePoint])
_CORRECTIONS = TypeAdapter(list[UserCorrection])
_STATS = TypeAdapter(dict[str, ModelPerformanceMetrics])

_logger = logging.getLogger(__name__)


@dataclass
class SessionTracker:
    """Records per-call and per-session model metrics."""

    store: KeyValueStore
    history_limit: int = DEFAULT_HISTORY_LIMIT
    _stats: dict[str, ModelPerformanceMetrics] = field(
        default_factory=dict, init=False, repr=False
    )
    _history: deque[ModelUsageSession] = field(init=False, repr=False)
    _confidence: deque[ConfidencePoint] = field(init=False, repr=False)
    _pending: dict[str, ModelUsageSession] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        self._history = deque(maxlen=self.history_limit)
        self._confidence = deque(maxlen=CONFIDENCE_HISTORY_LIMIT)
        self._load()

    def start_session(self, transcription_model: str, nutrition_model: str) -> str:
        """Open a session and return its id."""
        session_id = f"session_{uuid4().hex}"
        session = ModelUsageSession(
            session_id=session_id,
            timestamp=datetime.now(tz=UTC),
            transcription_model=transcription_model,
            nutrition_model=nutrition_model,
        )
        with self._lock:
            self._pending[session_id] = session
        try:
            self.store.set(
                SESSION_START_PREFIX + session_id, session.model_dump(mode="json")
            )
        except Exception:
            _logger.exception("Failed to persist session start %s", session_id)
        _logger.info("Started tracking session %s", session_id)
        return session_id

    def track_model_call(  # noqa: PLR0913
        self,
        model: str,
        latency_ms: float,
        tokens: int | None = None,
        success: bool = True,
        *,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
    ) -> None:
        """Update running latency, success rate and cost for a model."""
        try:
            with self._lock:
                stats = self._stats.setdefault(
                    model, ModelPerformanceMetrics(model_name=model)
                )
                cost = estimate_cost(model, latency_ms, input_tokens, output_tokens)
                stats.total_calls += 1
                if success:
                    stats.successful_calls += 1
                stats.total_tokens += tokens or 0
                stats.total_cost_usd += cost
                stats.avg_latency_ms += (
                    latency_ms - stats.avg_latency_ms
                ) / stats.total_calls
            _logger.info(
                "Model call %s: latency=%sms cost=$%.4f success=%s",
                model,
                round(latency_ms),
                cost,
                success,
            )
            self._persist_stats()
        except Exception:
            _logger.exception("Failed to track model call for %s", model)

    def complete_session(
        self, session_id: str, outcome: SessionOutcome | dict[str, object]
    ) -> None:
        """Close a session and append it to the bounded history."""
        try:
            resolved = (
                outcome
                if isinstance(outcome, SessionOutcome)
                else SessionOutcome.model_validate(outcome)
            )
            started = self._pop_started(session_id)
            if started is None:
                _logger.warning("Session %s not found for completion", session_id)
                return
            completed = started.model_copy(
                update=resolved.model_dump(exclude_none=True)
            )
            with self._lock:
                self._history.append(completed)
                if resolved.user_needed_modal is not None:
                    self._record_confidence(completed)
            self._persist()
            _logger.info(
                "Completed session %s: foods=%s modal=%s",
                session_id,
                completed.final_foods_count,
                completed.user_needed_modal,
            )
        except Exception:
            _logger.exception("Failed to complete session %s", session_id)

    def track_user_correction(  # noqa: PLR0913
        self,
        food_name: str,
        original_quantity: float,
        original_unit: str,
        corrected_quantity: float,
        corrected_unit: str,
        original_grams: float,
        corrected_grams: float,
    ) -> None:
        """Record a quantity the user corrected during review."""
        try:
            correction = UserCorrection(
                food_name=food_name,
                original_quantity=original_quantity,
                original_unit=original_unit,
                corrected_quantity=corrected_quantity,
                corrected_unit=corrected_unit,
                original_grams=original_grams,
                corrected_grams=corrected_grams,
                correction_ratio=(
                    corrected_grams / original_grams if original_grams > 0 else None
                ),
                timestamp=datetime.now(tz=UTC),
            )
            corrections = self.user_corrections()
            corrections.append(correction)
            corrections = corrections[-CORRECTION_HISTORY_LIMIT:]
            self.store.set(
                CORRECTIONS_KEY, _CORRECTIONS.dump_python(corrections, mode="json")
            )
            _logger.info(
                "User correction for %s: %sg -> %sg",
                food_name,
                original_grams,
                corrected_grams,
            )
        except Exception:
            _logger.exception("Failed to track user correction for %s", food_name)

    def model_stats(self) -> dict[str, ModelPerformanceMetrics]:
        """Return a copy of the per-model statistics."""
        with self._lock:
            return {name: stats.model_copy() for name, stats in self._stats.items()}

    def session_history(self) -> list[ModelUsageSession]:
        """Return completed sessions, oldest first."""
        with self._lock:
            return list(self._history)

    def user_corrections(self) -> list[UserCorrection]:
        """Return stored user corrections."""
        try:
            raw = self.store.get(CORRECTIONS_KEY)
            return _CORRECTIONS.validate_python(raw) if raw else []
        except Exception:
            _logger.exception("Failed to load user corrections")
            return []

    def confidence_accuracy(self) -> float:
        """Share of sessions where confidence predicted the need for a modal."""
        with self._lock:
            return _accuracy(list(self._confidence))

    def session_summary(self) -> SessionSummary:
        """Aggregate the session history and model statistics."""
        history = self.session_history()
        stats = self.model_stats()
        total_sessions = len(history)
        modal_sessions = sum(1 for session in history if session.user_needed_modal)
        avg_foods = (
            sum(session.final_foods_count for session in history) / total_sessions
            if total_sessions
            else 0.0
        )
        total_cost = sum(entry.total_cost_usd for entry in stats.values())
        avg_latency = (
            sum(entry.avg_latency_ms for entry in stats.values()) / len(stats)
            if stats
            else 0.0
        )
        return SessionSummary(
            total_sessions=total_sessions,
            modal_trigger_rate=(
                modal_sessions / total_sessions * 100 if total_sessions else 0.0
            ),
            avg_foods_per_session=round(avg_foods, 1),
            total_cost_usd=round(total_cost, 3),
            avg_latency_ms=float(round(avg_latency)),
            models_used=list(stats),
            confidence_accuracy=self.confidence_accuracy() * 100,
        )

    def performance_report(self) -> str:
        """Render a plain-text performance report."""
        summary = self.session_summary()
        corrections = self.user_corrections()
        cost_per_session = summary.total_cost_usd / max(summary.total_sessions, 1)
        lines = [
            "MODEL PERFORMANCE REPORT",
            "",
            "Overall performance:",
            f"- Total sessions: {summary.total_sessions}",
            f"- Modal trigger rate: {summary.modal_trigger_rate:.1f}%",
            f"- Confidence accuracy: {summary.confidence_accuracy:.1f}%",
            f"- Avg foods/session: {summary.avg_foods_per_session}",
            "",
            "Cost analysis:",
            f"- Total cost: ${summary.total_cost_usd:.3f}",
            f"- Avg latency: {summary.avg_latency_ms:.0f}ms",
            f"- Cost/session: ${cost_per_session:.4f}",
            "",
            "Model breakdown:",
        ]
        for name, stats in self.model_stats().items():
            lines.extend(
                [
                    f"- {name}:",
                    f"  calls: {stats.total_calls}",
                    f"  avg latency: {round(stats.avg_latency_ms)}ms",
                    f"  success rate: {stats.success_rate * 100:.1f}%",
                    f"  total cost: ${stats.total_cost_usd:.4f}",
                ]
            )
        lines.extend(["", f"User corrections: {len(corrections)} tracked"])
        return "\n".join(lines)

    def _pop_started(self, session_id: str) -> ModelUsageSession | None:
        with self._lock:
            session = self._pending.pop(session_id, None)
        key = SESSION_START_PREFIX + session_id
        if session is None:
            raw = self.store.get(key)
            if raw is not None:
                session = ModelUsageSession.model_validate(raw)
        try:
            self.store.delete(key)
        except Exception:
            _logger.exception("Failed to clear session start %s", session_id)
        return session

    def _record_confidence(self, session: ModelUsageSession) -> None:
        predicted = session.avg_confidence
        if predicted is None:
            predicted = 0.4 if session.user_needed_modal else 0.8
        self._confidence.append(
            ConfidencePoint(
                predicted_confidence=predicted,
                actual_user_needed_modal=session.user_needed_modal,
                timestamp=datetime.now(tz=UTC),
            )
        )
        stats = self._stats.get(session.nutrition_model)
        if stats is not None:
            stats.confidence_accuracy = _accuracy(list(self._confidence))

    def _load(self) -> None:
        try:
            stats = self.store.get(STATS_KEY)
            history = self.store.get(HISTORY_KEY)
            points = self.store.get(CONFIDENCE_KEY)
            if stats:
                self._stats = _STATS.validate_python(stats)
            if history:
                self._history.extend(_SESSIONS.validate_python(history))
            if points:
                self._confidence.extend(_POINTS.validate_python(points))
        except Exception:
            _logger.exception("Failed to load persisted tracking data")

    def _persist_stats(self) -> None:
        with self._lock:
            payload = _STATS.dump_python(self._stats, mode="json")
        try:
            self.store.set(STATS_KEY, payload)
        except Exception:
            _logger.exception("Failed to persist model stats")

    def _persist(self) -> None:
        with self._lock:
            history = _SESSIONS.dump_python(list(self._history), mode="json")
            points = _POINTS.dump_python(list(self._confidence), mode="json")
        try:
            self.store.set(HISTORY_KEY, history)
            self.store.set(CONFIDENCE_KEY, points)
        except Exception:
            _logger.exception("Failed to persist tracking history")
        self._persist_stats()


def estimate_cost(
    model: str,
    latency_ms: float,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
) -> float:
    """Estimate the USD cost of one model call."""
    costs = MODEL_COSTS.get(model)
    if costs is None:
        return 0.0
    input_rate, output_rate = costs
    if model in _AUDIO_MODELS:
        minutes = latency_ms / 60000
        return input_rate * minutes + output_rate * minutes
    return (input_tokens or 0) / 1000 * input_rate + (
        output_tokens or 0
    ) / 1000 * output_rate


def _accuracy(points: list[ConfidencePoint]) -> float:
    if not points:
        return 0.5
    correct = sum(
        1
        for point in points
        if (point.predicted_confidence < MODAL_CONFIDENCE_THRESHOLD)
        == point.actual_user_needed_modal
    )
    return correct / len(points)
