"""In-memory appointment list for a single view."""

from collections.abc import Callable
from datetime import date, datetime
from uuid import UUID

from surgery_support.core.exceptions import NotFoundException
from surgery_support.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
)
from surgery_support.services.appointment_service import AppointmentService


class AppointmentStore:
    """Holds the appointments a view is showing and keeps them in step with storage.

    Local state only changes after the backend write has been confirmed, so a
    failed call leaves the list exactly as it was.
    """

    def __init__(
        self,
        service: AppointmentService,
        appointments: list[AppointmentResponse] | None = None,
    ):
        self.service = service
        self.appointments: list[AppointmentResponse] = list(appointments or [])

    async def load(self) -> list[AppointmentResponse]:
        self.appointments = await self.service.list_all()
        return self.appointments

    def get(self, appointment_id: UUID) -> AppointmentResponse:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        raise NotFoundException("Appointment not found")

    async def create(self, data: AppointmentCreate, created_by: UUID) -> AppointmentResponse:
        appointment = await self.service.create_appointment(data, created_by)
        self.appointments.append(appointment)
        return appointment

    async def update(self, appointment_id: UUID, data: AppointmentUpdate) -> AppointmentResponse:
        appointment = await self.service.update_appointment(appointment_id, data)
        if self._replace(appointment_id, lambda _: appointment) is None:
            self.appointments.append(appointment)
        return appointment

    async def reschedule(
        self,
        appointment_id: UUID,
        new_date: date,
        new_time: str,
        check_conflicts: bool = True,
    ) -> AppointmentResponse:
        stored = await self.service.reschedule_appointment(
            appointment_id, new_date, new_time, check_conflicts=check_conflicts
        )
        # Only the slot changes locally; other fields keep their loaded values
        patched = self._replace(
            appointment_id,
            lambda current: current.model_copy(update={"date": new_date, "time": new_time}),
        )
        return patched or stored

    async def soft_delete(self, appointment_id: UUID) -> None:
        await self.service.delete_appointment(appointment_id)
        self.appointments = [a for a in self.appointments if a.id != appointment_id]

    def upcoming(self, now: datetime | None = None) -> list[AppointmentResponse]:
        today = (now or datetime.now()).date()
        return sorted(
            (a for a in self.appointments if a.date >= today),
            key=lambda a: (a.date, a.time),
        )

    def past(self, now: datetime | None = None) -> list[AppointmentResponse]:
        today = (now or datetime.now()).date()
        return sorted(
            (a for a in self.appointments if a.date < today),
            key=lambda a: (a.date, a.time),
            reverse=True,
        )

    def _replace(
        self,
        appointment_id: UUID,
        make: Callable[[AppointmentResponse], AppointmentResponse],
    ) -> AppointmentResponse | None:
        for index, current in enumerate(self.appointments):
            if current.id == appointment_id:
                self.appointments[index] = make(current)
                return self.appointments[index]
        # Written record was never loaded into this view
        return None
