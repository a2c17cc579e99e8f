"""Medication service: prescribed courses for each patient."""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from surgery_support.models.medications import medications
from surgery_support.schemas.medications import (
    MedicationCreate,
    MedicationResponse,
    MedicationUpdate,
)

logger = structlog.get_logger(__name__)

# start_date and name stay required
NULLABLE_FIELDS = frozenset(
    {
        "dosage",
        "frequency",
        "times",
        "instructions",
        "end_date",
        "category",
        "side_effects",
    }
)


class MedicationService:
    """Service for managing medication records.

    Args:
        db: Database session
        owner_id: Restrict access to this patient's medications; ``None``
            for clinical staff
    """

    def __init__(self, db: AsyncSession, owner_id: UUID | None = None):
        self.db = db
        self.owner_id = owner_id

    def _scope(self) -> list[Any]:
        conditions = [medications.c.deleted_at.is_(None)]
        if self.owner_id is not None:
            conditions.append(medications.c.user_id == self.owner_id)
        return conditions

    async def list_medications(
        self,
        patient_id: UUID | None = None,
        active_on: date | None = None,
    ) -> list[MedicationResponse]:
        """
        Medications in scope, newest first.

        Args:
            patient_id: Narrow to one patient (staff)
            active_on: Only courses running on this day
        """
        conditions = self._scope()
        if patient_id is not None:
            conditions.append(medications.c.user_id == patient_id)
        if active_on is not None:
            conditions.append(medications.c.start_date <= active_on)
            conditions.append(
                or_(medications.c.end_date.is_(None), medications.c.end_date >= active_on)
            )

        stmt = (
            select(medications)
            .where(and_(*conditions))
            .order_by(medications.c.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [MedicationResponse.model_validate(dict(row._mapping)) for row in result]

    async def get_medication(self, medication_id: UUID) -> MedicationResponse:
        """
        Get a live medication by ID.

        Raises:
            NotFoundException: If the medication is missing or soft-deleted
            ForbiddenException: If it belongs to another patient
        """
        stmt = select(medications).where(
            and_(medications.c.id == medication_id, medications.c.deleted_at.is_(None))
        )
        row = (await self.db.execute(stmt)).fetchone()

        if not row:
            raise NotFoundException("Medication not found")

        if self.owner_id is not None and row.user_id != self.owner_id:
            raise ForbiddenException("Access denied to this medication")

        return MedicationResponse.model_validate(dict(row._mapping))

    async def create_medication(
        self, data: MedicationCreate, created_by: UUID
    ) -> MedicationResponse:
        values = data.model_dump(exclude={"user_id"})
        values["user_id"] = data.user_id or created_by
        values["created_at"] = values["updated_at"] = datetime.now(UTC)

        stmt = insert(medications).values(**values).returning(medications)
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        logger.info(
            "medication_created",
            medication_id=str(row.id),
            user_id=str(row.user_id),
            name=row.name,
        )
        return MedicationResponse.model_validate(dict(row._mapping))

    async def update_medication(
        self, medication_id: UUID, data: MedicationUpdate
    ) -> MedicationResponse:
        """
        Apply a partial edit; explicit nulls clear the optional fields.

        Raises:
            NotFoundException: If the medication is missing
            ForbiddenException: If it belongs to another patient
            ValidationException: If the edited course would end before it starts
        """
        current = await self.get_medication(medication_id)

        values: dict[str, Any] = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if not values:
            return current

        start_date = values.get("start_date", current.start_date)
        end_date = values.get("end_date", current.end_date)
        if end_date is not None and end_date < start_date:
            raise ValidationException("end_date must not be before start_date")

        values["updated_at"] = datetime.now(UTC)
        stmt = (
            update(medications)
            .where(medications.c.id == medication_id)
            .values(**values)
            .returning(medications)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        logger.info("medication_updated", medication_id=str(medication_id))
        return MedicationResponse.model_validate(dict(row._mapping))

    async def delete_medication(self, medication_id: UUID) -> None:
        """Soft delete a medication."""
        await self.get_medication(medication_id)

        now = datetime.now(UTC)
        await self.db.execute(
            update(medications)
            .where(medications.c.id == medication_id)
            .values(deleted_at=now, updated_at=now)
        )
        await self.db.commit()
        logger.info("medication_deleted", medication_id=str(medication_id))
