"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    transcription_model: str = "whisper-1"
    nutrition_model: str = "gpt-4o"
    transcription_language: str | None = "ar"
    openai_store: bool = False
    openai_timeout_seconds: float = 60.0
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    admin_token: str
    unlimited_user_ids: str | None = None
    session_history_limit: int = 100
    strict_rescaling: bool = False
    override_rules_path: str | None = None
    unit_categories_path: str | None = None
    default_calorie_goal: float = 2000.0
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_unlimited_user_ids(raw: str | None) -> set[str]:
    """Parse user IDs exempt from recording quotas."""
    if raw is None:
        return set()
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return set()
    return {chunk.strip() for chunk in cleaned.split(",") if chunk.strip()}
