"""Notification preference endpoints."""

from fastapi import APIRouter

from surgery_support.core.roles import Capability
from surgery_support.dependencies import CacheManagerDep, CurrentSession
from surgery_support.schemas.notifications import (
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
)
from surgery_support.services.notification_service import NotificationPreferenceService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/preferences", response_model=NotificationPreferencesResponse)
async def get_notification_preferences(
    session: CurrentSession,
    cache_manager: CacheManagerDep,
) -> NotificationPreferencesResponse:
    """Current user's notification preferences."""
    preferences = NotificationPreferenceService(cache_manager).get_preferences(session.user_id)
    return NotificationPreferencesResponse(user_id=session.user_id, **preferences.model_dump())


@router.put("/preferences", response_model=NotificationPreferencesResponse)
async def update_notification_preferences(
    changes: NotificationPreferencesUpdate,
    session: CurrentSession,
    cache_manager: CacheManagerDep,
) -> NotificationPreferencesResponse:
    """Change some of the current user's notification preferences."""
    session.require(Capability.MANAGE_NOTIFICATION_PREFERENCES)
    preferences = NotificationPreferenceService(cache_manager).update_preferences(
        session.user_id, changes
    )
    return NotificationPreferencesResponse(user_id=session.user_id, **preferences.model_dump())
