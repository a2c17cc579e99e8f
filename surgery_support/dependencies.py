"""FastAPI dependencies."""

import random
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.config import settings
from surgery_support.core.redis_client import CacheManager, get_redis_client
from surgery_support.core.roles import Capability
from surgery_support.core.security import decode_access_token
from surgery_support.database import get_db
from surgery_support.services.appointment_service import AppointmentService
from surgery_support.services.availability_service import AvailabilityCalculator
from surgery_support.services.checklist_service import ChecklistService
from surgery_support.services.medication_service import MedicationService
from surgery_support.services.message_service import MessageService
from surgery_support.services.notification_service import NotificationService
from surgery_support.services.session_service import SessionManager, bind_log_context

# Security
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_session(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AsyncGenerator[SessionManager, None]:
    """
    Session for the authenticated user, torn down after the request.

    Raises:
        UnauthorizedException: If the profile does not exist
        ForbiddenException: If the profile is deactivated
    """
    session = SessionManager(db)
    unsubscribe = session.subscribe(bind_log_context)
    try:
        await session.initialize(user_id)
        yield session
    finally:
        session.teardown()
        unsubscribe()


def _owner_scope(
    session: SessionManager,
    view_all: Capability,
    view_own: Capability,
) -> UUID | None:
    """
    Owner filter for a scoped service.

    Returns:
        ``None`` when the role may read every patient's records, otherwise
        the current user's ID

    Raises:
        ForbiddenException: If the role may read neither
    """
    if session.has_capability(view_all):
        return None
    session.require(view_own, "Access denied to these records")
    return session.user_id


def get_appointment_service(
    session: Annotated[SessionManager, Depends(get_session)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AppointmentService:
    """Appointment service scoped to what the current role may see."""
    owner_id = _owner_scope(
        session, Capability.VIEW_ALL_APPOINTMENTS, Capability.VIEW_OWN_APPOINTMENTS
    )
    return AppointmentService(db, owner_id=owner_id)


def get_checklist_service(
    session: Annotated[SessionManager, Depends(get_session)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChecklistService:
    owner_id = _owner_scope(
        session, Capability.VIEW_ALL_CARE_RECORDS, Capability.VIEW_OWN_CARE_RECORDS
    )
    return ChecklistService(db, owner_id=owner_id)


def get_medication_service(
    session: Annotated[SessionManager, Depends(get_session)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MedicationService:
    owner_id = _owner_scope(
        session, Capability.VIEW_ALL_CARE_RECORDS, Capability.VIEW_OWN_CARE_RECORDS
    )
    return MedicationService(db, owner_id=owner_id)


def get_message_service(
    session: Annotated[SessionManager, Depends(get_session)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageService:
    """Conversations of the current patient, or all of them for clinical staff."""
    owner_id = _owner_scope(
        session, Capability.VIEW_ALL_CARE_RECORDS, Capability.VIEW_OWN_CARE_RECORDS
    )
    return MessageService(db, user_id=session.user_id, owner_id=owner_id)


def get_availability_calculator() -> AvailabilityCalculator:
    """Calculator seeded from settings when a seed is configured."""
    rng = random.Random(settings.availability_seed)
    return AvailabilityCalculator(rng=rng, booked_probability=settings.booked_slot_probability)


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_cache_manager() -> CacheManager:
    return CacheManager(get_redis_client())


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentSession = Annotated[SessionManager, Depends(get_session)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
ChecklistServiceDep = Annotated[ChecklistService, Depends(get_checklist_service)]
MedicationServiceDep = Annotated[MedicationService, Depends(get_medication_service)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]
AvailabilityCalculatorDep = Annotated[AvailabilityCalculator, Depends(get_availability_calculator)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
