"""Appointment service: record access for the appointments collection."""

from collections import Counter
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from surgery_support.models.appointments import appointments
from surgery_support.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentUpdate,
)

logger = structlog.get_logger(__name__)

# Columns an update may set back to NULL
NULLABLE_FIELDS = frozenset({"notes"})


class AppointmentService:
    """Service for managing appointment records.

    Args:
        db: Database session
        owner_id: Restrict every read and write to this patient's records.
            ``None`` gives unrestricted access (care-team roles).
    """

    def __init__(self, db: AsyncSession, owner_id: UUID | None = None):
        """Initialize service with database session and access scope."""
        self.db = db
        self.owner_id = owner_id

    def _scope(self) -> list[Any]:
        conditions = [appointments.c.deleted_at.is_(None)]
        if self.owner_id is not None:
            conditions.append(appointments.c.user_id == self.owner_id)
        return conditions

    async def create_appointment(
        self,
        data: AppointmentCreate,
        created_by: UUID,
    ) -> AppointmentResponse:
        """
        Create a new appointment.

        Args:
            data: Appointment creation data
            created_by: Profile creating the record, used as owner when
                ``data.user_id`` is empty

        Returns:
            Created appointment as stored
        """
        values = data.model_dump(exclude={"user_id"})
        values["type"] = data.type.value
        values["user_id"] = data.user_id or created_by

        stmt = insert(appointments).values(**values).returning(appointments)
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        logger.info(
            "appointment_created",
            appointment_id=str(row.id),
            user_id=str(row.user_id),
            type=row.type,
        )
        return AppointmentResponse.model_validate(dict(row._mapping))

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get a non-deleted appointment by ID.

        Raises:
            NotFoundException: If appointment not found or soft-deleted
            ForbiddenException: If it belongs to another patient
        """
        stmt = select(appointments).where(
            and_(
                appointments.c.id == appointment_id,
                appointments.c.deleted_at.is_(None),
            )
        )

        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        if self.owner_id is not None and row.user_id != self.owner_id:
            raise ForbiddenException("Access denied to this appointment")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def list_all(self) -> list[AppointmentResponse]:
        """Every appointment in scope, date then time ascending."""
        stmt = (
            select(appointments)
            .where(and_(*self._scope()))
            .order_by(appointments.c.date.asc(), appointments.c.time.asc())
        )
        result = await self.db.execute(stmt)
        return [AppointmentResponse.model_validate(dict(row._mapping)) for row in result]

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments, date ascending
        """
        conditions = self._scope()

        if filters.patient_id:
            conditions.append(appointments.c.user_id == filters.patient_id)

        if filters.type:
            conditions.append(appointments.c.type == filters.type.value)

        if filters.from_date:
            conditions.append(appointments.c.date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.date <= filters.to_date)

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    appointments.c.title.ilike(pattern),
                    appointments.c.provider.ilike(pattern),
                    appointments.c.location.ilike(pattern),
                )
            )

        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.date.asc(), appointments.c.time.asc())
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [AppointmentResponse.model_validate(dict(row._mapping)) for row in result]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def get_upcoming_appointments(
        self, today: date | None = None, limit: int = 5
    ) -> list[AppointmentResponse]:
        """Appointments from today onwards, soonest first."""
        today = today or date.today()
        stmt = (
            select(appointments)
            .where(and_(*self._scope(), appointments.c.date >= today))
            .order_by(appointments.c.date.asc(), appointments.c.time.asc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [AppointmentResponse.model_validate(dict(row._mapping)) for row in result]

    async def get_past_appointments(
        self, today: date | None = None, limit: int = 10
    ) -> list[AppointmentResponse]:
        """Appointments before today, most recent first."""
        today = today or date.today()
        stmt = (
            select(appointments)
            .where(and_(*self._scope(), appointments.c.date < today))
            .order_by(appointments.c.date.desc(), appointments.c.time.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [AppointmentResponse.model_validate(dict(row._mapping)) for row in result]

    async def get_appointment_stats(self, today: date | None = None) -> AppointmentStats:
        """Count appointments in scope by period and type."""
        today = today or date.today()
        stmt = select(appointments.c.type, appointments.c.date).where(and_(*self._scope()))
        rows = (await self.db.execute(stmt)).fetchall()

        return AppointmentStats(
            total=len(rows),
            upcoming=sum(1 for row in rows if row.date >= today),
            past=sum(1 for row in rows if row.date < today),
            by_type=dict(Counter(row.type for row in rows)),
        )

    async def check_availability(
        self,
        slot_date: date,
        slot_time: str,
        provider: str | None = None,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        """
        Check that no live appointment occupies a slot.

        Runs across all patients regardless of the service scope.

        Returns:
            True if the slot is free
        """
        conditions = [
            appointments.c.date == slot_date,
            appointments.c.time == slot_time,
            appointments.c.deleted_at.is_(None),
        ]

        if provider:
            conditions.append(appointments.c.provider == provider)

        if exclude_appointment_id:
            conditions.append(appointments.c.id != exclude_appointment_id)

        stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) == 0

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Update any field of an existing appointment.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
        """
        current = await self.get_appointment(appointment_id)

        # Explicit nulls clear nullable columns; elsewhere they mean "unchanged"
        update_values: dict[str, Any] = {
            field: value
            for field, value in data.model_dump(exclude_unset=True, mode="json").items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if "date" in update_values:
            update_values["date"] = data.date

        if not update_values:
            return current

        return await self._write(appointment_id, update_values)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        new_date: date,
        new_time: str,
        check_conflicts: bool = True,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new slot, touching only date and time.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
            ConflictException: If the provider already has a live
                appointment in that slot
        """
        current = await self.get_appointment(appointment_id)

        if check_conflicts and not await self.check_availability(
            new_date, new_time, current.provider, exclude_appointment_id=appointment_id
        ):
            raise ConflictException(
                f"{current.provider} already has an appointment on {new_date} at {new_time}"
            )

        appointment = await self._write(appointment_id, {"date": new_date, "time": new_time})
        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            old_date=str(current.date),
            old_time=current.time,
            new_date=str(new_date),
            new_time=new_time,
        )
        return appointment

    async def delete_appointment(self, appointment_id: UUID) -> None:
        """
        Soft delete an appointment by setting its tombstone.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
        """
        await self.get_appointment(appointment_id)

        now = datetime.now(UTC)
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(deleted_at=now, updated_at=now)
        )

        await self.db.execute(stmt)
        await self.db.commit()
        logger.info("appointment_deleted", appointment_id=str(appointment_id))

    async def _write(self, appointment_id: UUID, values: dict[str, Any]) -> AppointmentResponse:
        values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )

        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        return AppointmentResponse.model_validate(dict(row._mapping))
