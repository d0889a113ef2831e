"""Domain errors raised by the voice nutrition pipeline."""


class VoiceNutritionError(Exception):
    """Base class for pipeline errors."""


class TranscriptionEmptyError(VoiceNutritionError):
    """No speech was detected in the recording."""


class NoFoodDetectedError(VoiceNutritionError):
    """The transcript did not mention any food."""


class InvalidBaseQuantityError(VoiceNutritionError, ValueError):
    """A rescale was requested from a non-positive base weight."""


class EntitlementExceededError(VoiceNutritionError):
    """The user has no recordings left in the current period."""


class PipelineBusyError(VoiceNutritionError):
    """A recording is already being processed."""


class AIServiceError(VoiceNutritionError):
    """An external AI call failed."""

    kind = "ai_service"
    retryable = False


class NetworkError(AIServiceError):
    """The AI service could not be reached."""

    kind = "network"
    retryable = True


class RateLimitedError(AIServiceError):
    """The AI service rejected the call because of rate limits."""

    kind = "rate_limited"
    retryable = True


class InvalidCredentialError(AIServiceError):
    """The configured API key was rejected."""

    kind = "invalid_credential"


class InvalidResponseError(AIServiceError):
    """The AI service returned an unusable payload."""

    kind = "invalid_response"


_ERRORS_BY_KIND: dict[str, type[AIServiceError]] = {
    cls.kind: cls
    for cls in (
        AIServiceError,
        NetworkError,
        RateLimitedError,
        InvalidCredentialError,
        InvalidResponseError,
    )
}


def error_for_kind(kind: str, message: str) -> AIServiceError:
    """Build the AI service error matching a failure kind."""
    return _ERRORS_BY_KIND.get(kind, AIServiceError)(message)
