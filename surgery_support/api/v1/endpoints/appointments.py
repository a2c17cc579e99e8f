"""Appointment endpoints."""

from datetime import date
from uuid import UUID

import structlog
from fastapi import APIRouter, Query, status

from surgery_support.config import settings
from surgery_support.core.roles import Capability
from surgery_support.dependencies import (
    AppointmentServiceDep,
    AvailabilityCalculatorDep,
    CurrentSession,
    DatabaseSession,
    NotificationServiceDep,
)
from surgery_support.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentType,
    AppointmentUpdate,
    AvailableTimesResponse,
    RescheduleRequest,
)
from surgery_support.schemas.notifications import AppointmentNotification, NotificationType
from surgery_support.services.appointment_store import AppointmentStore
from surgery_support.services.reschedule_service import RescheduleDialog
from surgery_support.services.user_service import UserService

router = APIRouter()
logger = structlog.get_logger(__name__)

STAFF_ONLY = "Only healthcare staff can manage appointments"


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    session: CurrentSession,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Create an appointment for a patient. Staff only.

    Args:
        data: Appointment creation data
        session: Current session
        service: Scoped appointment service

    Returns:
        Created appointment
    """
    session.require(Capability.MANAGE_APPOINTMENTS, STAFF_ONLY)
    return await service.create_appointment(data, created_by=session.user_id)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    service: AppointmentServiceDep,
    patient_id: UUID | None = Query(None),
    type_filter: AppointmentType | None = Query(None, alias="type"),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments visible to the current user.

    Patients only ever see their own; staff may narrow by ``patient_id``.
    ``search`` matches title, provider and location.
    """
    filters = AppointmentFilters(
        patient_id=patient_id,
        type=type_filter,
        from_date=from_date,
        to_date=to_date,
        search=search,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(filters)


@router.get(
    "/upcoming",
    response_model=list[AppointmentResponse],
    summary="Upcoming appointments",
)
async def list_upcoming_appointments(
    service: AppointmentServiceDep,
    limit: int = Query(5, ge=1, le=100),
) -> list[AppointmentResponse]:
    """Appointments from today onwards, soonest first."""
    return await service.get_upcoming_appointments(limit=limit)


@router.get(
    "/past",
    response_model=list[AppointmentResponse],
    summary="Past appointments",
)
async def list_past_appointments(
    service: AppointmentServiceDep,
    limit: int = Query(10, ge=1, le=100),
) -> list[AppointmentResponse]:
    """Appointments before today, most recent first."""
    return await service.get_past_appointments(limit=limit)


@router.get(
    "/stats",
    response_model=AppointmentStats,
    summary="Appointment statistics",
)
async def get_appointment_stats(service: AppointmentServiceDep) -> AppointmentStats:
    """Totals by period and by type."""
    return await service.get_appointment_stats()


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found or deleted
        ForbiddenException: If it belongs to another patient
    """
    return await service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    session: CurrentSession,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Edit any field of an appointment. Staff only."""
    session.require(Capability.MANAGE_APPOINTMENTS, STAFF_ONLY)
    return await service.update_appointment(appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    session: CurrentSession,
    service: AppointmentServiceDep,
) -> None:
    """Soft delete an appointment. Staff only."""
    session.require(Capability.MANAGE_APPOINTMENTS, STAFF_ONLY)
    await service.delete_appointment(appointment_id)


@router.get(
    "/{appointment_id}/available-times",
    response_model=AvailableTimesResponse,
    summary="Bookable times for a date",
)
async def get_available_times(
    appointment_id: UUID,
    service: AppointmentServiceDep,
    calculator: AvailabilityCalculatorDep,
    day: date = Query(..., alias="date"),
) -> AvailableTimesResponse:
    """Times the reschedule dialog offers for ``date``; empty when the date is closed."""
    appointment = await service.get_appointment(appointment_id)
    dialog = RescheduleDialog(
        appointment,
        calculator=calculator,
        booking_horizon_days=settings.booking_horizon_days,
    )
    times = dialog.get_available_times_for_date(day) if dialog.is_date_available(day) else []
    return AvailableTimesResponse(date=day, times=times)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: RescheduleRequest,
    session: CurrentSession,
    service: AppointmentServiceDep,
    calculator: AvailabilityCalculatorDep,
    notifier: NotificationServiceDep,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Move an appointment to a new date and time.

    The provider is notified in the background once the new slot is stored.

    Raises:
        RescheduleValidationError: If the slot is incomplete, unavailable
            or unchanged
        ConflictException: If the provider is already booked in that slot
    """
    session.require(Capability.RESCHEDULE_APPOINTMENTS)

    # Scoped read: another patient's record is rejected before anything else
    appointment = await service.get_appointment(appointment_id)
    store = AppointmentStore(service, [appointment])

    # Resolved now; the notification runs after this request's session closes
    recipient = await UserService.get_provider_recipient(db, appointment.provider)
    owner = await UserService.get_user_by_id(db, appointment.user_id)
    patient_name = (owner or {}).get("full_name") or (owner or {}).get("email") or "Patient"

    async def reschedule(target_id: UUID, new_date: date, new_time: str) -> None:
        await store.reschedule(
            target_id,
            new_date,
            new_time,
            check_conflicts=settings.enforce_provider_conflicts,
        )

    async def notify_participants(target_id: UUID, participants: list[str]) -> None:
        notification = AppointmentNotification(
            type=NotificationType.RESCHEDULE,
            appointment_id=target_id,
            appointment_title=appointment.title,
            old_date=appointment.date,
            old_time=appointment.time,
            new_date=data.date,
            new_time=data.time,
            patient_name=patient_name,
            provider_name=appointment.provider,
            location=appointment.location,
            notes=appointment.notes,
        )
        recipients = [recipient] if recipient.name in participants else []
        result = await notifier.send_appointment_notification(notification, recipients)
        logger.info(
            "reschedule_notification_sent",
            appointment_id=str(target_id),
            participants=participants,
            sent_to=result.sent_to,
        )

    dialog = RescheduleDialog(
        appointment,
        on_reschedule=reschedule,
        on_notification_sent=notify_participants,
        calculator=calculator,
        booking_horizon_days=settings.booking_horizon_days,
        notification_delay=settings.notification_dispatch_delay,
        confirmation_delay=settings.confirmation_close_delay,
    )
    if data.date is not None:
        dialog.select_date(data.date)
    if data.time is not None:
        dialog.select_time(data.time)
    await dialog.confirm()

    return store.get(appointment_id)
