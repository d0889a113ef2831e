"""Translation of OpenAI SDK exceptions into domain errors."""

from collections.abc import Awaitable
from typing import TypeVar

import openai

from voice_nutrition.domain.errors import (
    AIServiceError,
    InvalidCredentialError,
    NetworkError,
    RateLimitedError,
)

T = TypeVar("T")

_SERVER_ERROR_STATUS = 500


def translate_openai_error(exc: openai.OpenAIError) -> AIServiceError:
    """Map an OpenAI SDK exception to the matching domain error."""
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return InvalidCredentialError("The OpenAI API key was rejected")
    if isinstance(exc, openai.RateLimitError):
        return RateLimitedError("OpenAI rate limit reached, try again shortly")
    if isinstance(exc, openai.APITimeoutError | openai.APIConnectionError):
        return NetworkError("Could not reach OpenAI")
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= _SERVER_ERROR_STATUS:
            return NetworkError(f"OpenAI returned status {exc.status_code}")
        return AIServiceError(f"OpenAI rejected the request ({exc.status_code})")
    return AIServiceError(str(exc))


async def translating_openai_errors(call: Awaitable[T]) -> T:
    """Await an SDK call, raising domain errors instead of SDK exceptions."""
    try:
        return await call
    except openai.OpenAIError as exc:
        raise translate_openai_error(exc) from exc
