"""Analytics records for model usage tracking."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ModelPerformanceMetrics(BaseModel):
    """Running statistics for one model."""

    model_config = ConfigDict(protected_namespaces=())

    model_name: str
    total_calls: int = 0
    successful_calls: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    avg_latency_ms: float = 0.0
    confidence_accuracy: float = 0.5

    @property
    def success_rate(self) -> float:
        if self.total_calls == 0:
            return 1.0
        return self.successful_calls / self.total_calls


class ModelUsageSession(BaseModel):
    """One transcribe and parse round trip."""

    session_id: str
    timestamp: datetime
    transcription_model: str
    nutrition_model: str
    transcription_latency_ms: float = 0.0
    nutrition_latency_ms: float = 0.0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    user_needed_modal: bool = False
    confidence_accurate: bool = True
    final_foods_count: int = 0
    avg_confidence: float | None = None
    performance_notes: list[str] = Field(default_factory=list)


class SessionOutcome(BaseModel):
    """Fields reported when a session completes."""

    transcription_latency_ms: float | None = None
    nutrition_latency_ms: float | None = None
    total_tokens: int | None = None
    estimated_cost_usd: float | None = None
    user_needed_modal: bool | None = None
    confidence_accurate: bool | None = None
    final_foods_count: int | None = None
    avg_confidence: float | None = None
    performance_notes: list[str] | None = None


class ConfidencePoint(BaseModel):
    """Predicted confidence compared with whether the user needed a modal."""

    predicted_confidence: float
    actual_user_needed_modal: bool
    timestamp: datetime
    food_type: str = "mixed"


class UserCorrection(BaseModel):
    """A quantity the user changed during review."""

    food_name: str
    original_quantity: float
    original_unit: str
    corrected_quantity: float
    corrected_unit: str
    original_grams: float
    corrected_grams: float
    correction_ratio: float | None
    timestamp: datetime


class SessionSummary(BaseModel):
    """Aggregate view over the tracked session history."""

    total_sessions: int
    modal_trigger_rate: float
    avg_foods_per_session: float
    total_cost_usd: float
    avg_latency_ms: float
    models_used: list[str]
    confidence_accuracy: float
