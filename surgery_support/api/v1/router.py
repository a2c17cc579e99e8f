"""API v1 router configuration."""

from fastapi import APIRouter

from surgery_support.api.v1.endpoints import (
    appointments,
    availability,
    checklist,
    dashboard,
    health,
    medications,
    messages,
    notifications,
    users,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(users.router)
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(availability.router, prefix="/availability", tags=["Availability"])
api_router.include_router(checklist.router)
api_router.include_router(medications.router)
api_router.include_router(messages.router)
api_router.include_router(notifications.router)
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
