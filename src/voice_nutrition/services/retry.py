"""Short retry loop for calls to external AI services."""

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

from voice_nutrition.domain.errors import AIServiceError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

_logger = logging.getLogger(__name__)


async def call_with_retry(
    func: "Callable[[], Awaitable[T]]",
    *,
    action: str,
    retry_attempts: int = 1,
    retry_delay_seconds: float = 0.3,
) -> T:
    """Call an async function, retrying transient AI service failures."""
    attempt = 0
    while True:
        try:
            return await func()
        except AIServiceError as exc:
            attempt += 1
            _logger.warning(
                "%s failed (attempt %s/%s, kind=%s, status=%s): %s",
                action,
                attempt,
                retry_attempts + 1,
                exc.kind,
                _status_code_from_exception(exc),
                exc,
            )
            if not exc.retryable or attempt > retry_attempts:
                raise
            await asyncio.sleep(retry_delay_seconds)


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception or its cause, if available."""
    for candidate in (exc, exc.__cause__):
        status_code = getattr(candidate, "status_code", None)
        if status_code is None:
            response = getattr(candidate, "response", None)
            status_code = getattr(response, "status_code", None)
        if isinstance(status_code, int):
            return str(status_code)
    return "n/a"
