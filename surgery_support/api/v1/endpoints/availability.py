"""Availability endpoints."""

from fastapi import APIRouter, Query

from surgery_support.config import settings
from surgery_support.dependencies import AvailabilityCalculatorDep, CurrentSession
from surgery_support.schemas.availability import AvailabilityResponse

router = APIRouter()


@router.get(
    "/slots",
    response_model=AvailabilityResponse,
    summary="Open appointment slots",
)
async def get_available_slots(
    session: CurrentSession,
    calculator: AvailabilityCalculatorDep,
    horizon_days: int | None = Query(None, ge=1, le=365),
) -> AvailabilityResponse:
    """
    Weekday slots over the coming days, with existing bookings simulated.

    Days where every time is taken are left out.
    """
    horizon = horizon_days or settings.overview_horizon_days
    return AvailabilityResponse(
        horizon_days=horizon,
        slots=calculator.generate_available_slots(horizon_days=horizon),
    )
