"""User endpoints."""

from fastapi import APIRouter

from surgery_support.core.roles import Capability
from surgery_support.dependencies import CurrentSession, DatabaseSession
from surgery_support.schemas.dashboard import PatientSummary
from surgery_support.schemas.users import UserProfileResponse
from surgery_support.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_profile(session: CurrentSession) -> UserProfileResponse:
    """Get current user's profile with its role."""
    return UserProfileResponse.model_validate(session.user)


@router.post("/me/refresh", response_model=UserProfileResponse)
async def refresh_current_user_profile(session: CurrentSession) -> UserProfileResponse:
    """Reload the profile, e.g. after a role change."""
    return UserProfileResponse.model_validate(await session.refresh())


@router.get("/patients", response_model=list[PatientSummary])
async def list_patients(session: CurrentSession, db: DatabaseSession) -> list[PatientSummary]:
    """
    Patient roster with upcoming appointment counts. Care team only.

    Raises:
        ForbiddenException: If the role may not see the roster
    """
    session.require(Capability.VIEW_PATIENT_ROSTER, "Only the care team can view patients")
    return await UserService.get_patient_roster(db)
