"""
Strategy router - CRUD for schedule strategies and their excluded dates.

GET    /strategies
GET    /strategies/{strategy_id}
POST   /strategies
PUT    /strategies/{strategy_id}
DELETE /strategies/{strategy_id}
GET    /strategies/{strategy_id}/excluded-dates
PUT    /strategies/{strategy_id}/excluded-dates
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Response

from assoc_scheduler.api.deps import Runtime
from assoc_scheduler.api.schemas.common import PagedResponse, PageMeta, SuccessResponse
from assoc_scheduler.api.schemas.domains import (
    ExcludedDateSchema,
    ExcludedDatesBody,
    StrategyBody,
    StrategySchema,
)

router = APIRouter(prefix="/strategies")


@router.get("", response_model=PagedResponse[StrategySchema])
def list_strategies(runtime: Runtime):
    """List all schedule strategies."""
    items = [StrategySchema.model_validate(s) for s in runtime.strategies.list_strategies()]
    return PagedResponse(data=items, page=PageMeta(total=len(items)))


@router.get("/{strategy_id}", response_model=SuccessResponse[StrategySchema])
def get_strategy(runtime: Runtime, strategy_id: int = Path(..., description="Strategy ID")):
    """Get one strategy.

    Raises:
        404: Strategy does not exist.
    """
    strategy = runtime.strategies.get_strategy(strategy_id)
    return SuccessResponse(data=StrategySchema.model_validate(strategy))


@router.post("", response_model=SuccessResponse[StrategySchema], status_code=201)
def create_strategy(runtime: Runtime, body: StrategyBody):
    """Create a strategy.  The cron expression is derived from the fields.

    Example:
        POST /api/v1/strategies
        {"name": "weekday-mornings", "schedule_type": "WEEKLY",
         "start_time": "09:00:00", "days_of_week": ["MON", "WED", "FRI"]}

        Response:
        {"data": {"id": 1, "cron_expression": "0 0 9 ? * MON,WED,FRI", ...}}

    Raises:
        400: Required fields for the schedule type are missing.
    """
    strategy = runtime.strategies.create_strategy(body.to_strategy(), body.excluded_dates)
    return SuccessResponse(data=StrategySchema.model_validate(strategy))


@router.put("/{strategy_id}", response_model=SuccessResponse[StrategySchema])
def update_strategy(
    runtime: Runtime,
    body: StrategyBody,
    strategy_id: int = Path(..., description="Strategy ID"),
):
    """Overwrite a strategy and re-sync every job bound to it."""
    strategy = runtime.strategies.update_strategy(strategy_id, body.to_strategy(), body.excluded_dates)
    return SuccessResponse(data=StrategySchema.model_validate(strategy))


@router.delete("/{strategy_id}", status_code=204)
def delete_strategy(runtime: Runtime, strategy_id: int = Path(..., description="Strategy ID")):
    """Delete a strategy.

    Raises:
        409: Jobs still reference the strategy.
    """
    runtime.strategies.delete_strategy(strategy_id)
    return Response(status_code=204)


@router.get("/{strategy_id}/excluded-dates", response_model=PagedResponse[ExcludedDateSchema])
def list_excluded_dates(runtime: Runtime, strategy_id: int = Path(..., description="Strategy ID")):
    runtime.strategies.get_strategy(strategy_id)
    items = [ExcludedDateSchema.model_validate(d) for d in runtime.strategies.list_excluded_dates(strategy_id)]
    return PagedResponse(data=items, page=PageMeta(total=len(items)))


@router.put("/{strategy_id}/excluded-dates", response_model=PagedResponse[ExcludedDateSchema])
def replace_excluded_dates(
    runtime: Runtime,
    body: ExcludedDatesBody,
    strategy_id: int = Path(..., description="Strategy ID"),
):
    """Replace the strategy's excluded dates.  An empty list clears them."""
    runtime.strategies.update_excluded_dates(strategy_id, body.dates)
    items = [ExcludedDateSchema.model_validate(d) for d in runtime.strategies.list_excluded_dates(strategy_id)]
    return PagedResponse(data=items, page=PageMeta(total=len(items)))
