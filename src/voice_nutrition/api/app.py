"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from fastapi import FastAPI, Header, HTTPException, Request, status

from voice_nutrition.api.admin import router as admin_router
from voice_nutrition.api.models import (
    CalorieGoalRequest,
    DailyLogPayload,
    FoodItemPayload,
    LogEntryRequest,
    LoggedEntryPayload,
    MacroPayload,
    ProcessingResponse,
    QuantityUpdateRequest,
    RescaleRequest,
    RescaleResponse,
    TranscriptRequest,
    UnitOptionPayload,
    UsagePayload,
    ValidationPayload,
)
from voice_nutrition.app_logging import configure_logging
from voice_nutrition.containers import AppContainer
from voice_nutrition.domain.errors import (
    AIServiceError,
    EntitlementExceededError,
    InvalidBaseQuantityError,
    InvalidCredentialError,
    NoFoodDetectedError,
    PipelineBusyError,
    RateLimitedError,
    TranscriptionEmptyError,
    VoiceNutritionError,
)
from voice_nutrition.domain.logs import FoodSnapshot
from voice_nutrition.services.pipeline import ProcessingResult

_UNPROCESSABLE = 422

_STATUS_BY_ERROR: list[tuple[type[VoiceNutritionError], int]] = [
    (TranscriptionEmptyError, _UNPROCESSABLE),
    (NoFoodDetectedError, _UNPROCESSABLE),
    (InvalidBaseQuantityError, _UNPROCESSABLE),
    (EntitlementExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (InvalidCredentialError, status.HTTP_401_UNAUTHORIZED),
    (PipelineBusyError, status.HTTP_409_CONFLICT),
    (AIServiceError, status.HTTP_502_BAD_GATEWAY),
]


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Starting voice nutrition API (environment=%s)",
            container.settings.environment,
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/voice/process")
    async def process_voice(
        request: Request,
        user_id: str,
        recording_id: str | None = None,
        x_filename: str | None = Header(default=None),
    ) -> ProcessingResponse:
        """Transcribe a raw audio body and return reconciled food items."""
        state_container: AppContainer = request.app.state.container
        audio = await request.body()
        try:
            result = await state_container.pipeline.process_recording(
                audio,
                user_id=user_id,
                recording_id=recording_id,
                filename=x_filename or "recording.m4a",
            )
        except VoiceNutritionError as exc:
            raise _http_error(exc) from exc
        return _processing_response(result)

    @app.post("/foods/parse")
    async def parse_foods(
        payload: TranscriptRequest, request: Request
    ) -> ProcessingResponse:
        """Parse a typed meal description into reconciled food items."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.pipeline.process_transcript(
                payload.transcript
            )
        except VoiceNutritionError as exc:
            raise _http_error(exc) from exc
        return _processing_response(result)

    @app.get("/units")
    async def suggest_units(
        food_name: str, request: Request
    ) -> dict[str, list[UnitOptionPayload]]:
        """Return the unit options for a food."""
        state_container: AppContainer = request.app.state.container
        options = state_container.unit_converter.suggest_units(food_name)
        return {"units": [UnitOptionPayload.from_option(opt) for opt in options]}

    @app.post("/foods/rescale")
    async def rescale_food(
        payload: RescaleRequest, request: Request
    ) -> RescaleResponse:
        """Recompute nutrition for a new quantity, unit or cooking method."""
        state_container: AppContainer = request.app.state.container
        converter = state_container.unit_converter
        rescaler = state_container.rescaler
        grams = converter.to_grams(payload.food_name, payload.quantity, payload.unit)
        try:
            nutrition = rescaler.rescale(
                payload.nutrition.to_profile(), payload.base_grams, grams
            )
        except InvalidBaseQuantityError as exc:
            raise _http_error(exc) from exc
        method = payload.cooking_method or payload.original_cooking_method
        nutrition = rescaler.change_cooking_method(
            nutrition, payload.original_cooking_method, method
        )
        _track_correction(state_container, payload, grams)
        validation = rescaler.validate(
            nutrition,
            food_name=payload.food_name,
            quantity=payload.quantity,
            unit=payload.unit,
            cooking_method=method,
        )
        return RescaleResponse(
            nutrition=MacroPayload.from_profile(nutrition),
            gram_equivalent=grams,
            weight_label=converter.format_weight(
                payload.food_name, payload.quantity, payload.unit
            ),
            validation=ValidationPayload.from_validation(validation),
        )

    @app.get("/logs")
    async def list_logs(request: Request) -> dict[str, list[str]]:
        """Return the dates that have a log."""
        state_container: AppContainer = request.app.state.container
        dates = state_container.daily_log_service.list_dates()
        return {"dates": [day.isoformat() for day in dates]}

    @app.get("/logs/{day}")
    async def get_log(day: date, request: Request) -> DailyLogPayload:
        """Return the log for a day."""
        state_container: AppContainer = request.app.state.container
        log = state_container.daily_log_service.get_daily_log(day)
        if log is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return DailyLogPayload.from_log(log)

    @app.post("/logs/{day}/entries", status_code=status.HTTP_201_CREATED)
    async def log_food(
        day: date, payload: LogEntryRequest, request: Request
    ) -> LoggedEntryPayload:
        """Add a confirmed food to a day's log."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.daily_log_service.log_food(
            day,
            FoodSnapshot(
                name=payload.name,
                nutrition=payload.nutrition.to_profile(),
                serving_size=payload.serving_size,
                serving_unit=payload.serving_unit,
            ),
            payload.quantity,
            payload.meal_type,
        )
        return LoggedEntryPayload.from_entry(entry)

    @app.delete("/logs/{day}/entries/{entry_id}")
    async def remove_entry(
        day: date, entry_id: UUID, request: Request
    ) -> DailyLogPayload:
        """Remove an entry and return the updated log."""
        state_container: AppContainer = request.app.state.container
        log = state_container.daily_log_service.remove_entry(day, entry_id)
        if log is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return DailyLogPayload.from_log(log)

    @app.patch("/logs/{day}/entries/{entry_id}")
    async def update_entry(
        day: date, entry_id: UUID, payload: QuantityUpdateRequest, request: Request
    ) -> DailyLogPayload:
        """Change an entry's quantity and return the updated log."""
        state_container: AppContainer = request.app.state.container
        log = state_container.daily_log_service.update_entry_quantity(
            day, entry_id, payload.quantity
        )
        if log is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return DailyLogPayload.from_log(log)

    @app.put("/calorie-goal")
    async def update_calorie_goal(
        payload: CalorieGoalRequest, request: Request
    ) -> dict[str, float | int]:
        """Apply a new calorie goal to all logs."""
        state_container: AppContainer = request.app.state.container
        updated = state_container.daily_log_service.update_calorie_goal(
            payload.calorie_goal
        )
        return {"calorie_goal": payload.calorie_goal, "updated_logs": updated}

    @app.get("/usage/{user_id}")
    async def usage(user_id: str, request: Request) -> UsagePayload:
        """Return the user's recording usage this month."""
        state_container: AppContainer = request.app.state.container
        return UsagePayload.from_usage(
            state_container.entitlement_service.current_usage(user_id)
        )

    return app


def _http_error(exc: VoiceNutritionError) -> HTTPException:
    """Map a domain error to an HTTP error response."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
    )


def _track_correction(
    container: AppContainer, payload: RescaleRequest, grams: float
) -> None:
    """Record a quantity or unit edit as a user correction."""
    original_quantity = (
        payload.base_grams
        if payload.original_quantity is None
        else payload.original_quantity
    )
    original_unit = payload.original_unit or "grams"
    if (original_quantity, original_unit) == (payload.quantity, payload.unit):
        return
    container.tracker.track_user_correction(
        payload.food_name,
        original_quantity,
        original_unit,
        payload.quantity,
        payload.unit,
        payload.base_grams,
        grams,
    )


def _processing_response(result: ProcessingResult) -> ProcessingResponse:
    return ProcessingResponse(
        session_id=result.session_id,
        transcript=result.transcript,
        needs_review=result.needs_review,
        items=[FoodItemPayload.from_item(item) for item in result.items],
    )
