"""Checklist service: preparation and recovery tasks assigned to patients."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.exceptions import ForbiddenException, NotFoundException
from surgery_support.models.checklist import checklist_items
from surgery_support.schemas.checklist import (
    ChecklistItemCreate,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    ChecklistProgress,
)

logger = structlog.get_logger(__name__)

# Columns an update may set back to NULL
NULLABLE_FIELDS = frozenset({"description", "priority", "category", "due_date"})


def completion_percentage(completed: int, total: int) -> int:
    """Share of completed tasks as a whole percentage, halves rounded up."""
    if total == 0:
        return 0
    return (200 * completed + total) // (2 * total)


class ChecklistService:
    """Service for managing checklist items.

    Args:
        db: Database session
        owner_id: Restrict access to this patient's items; ``None`` for staff
    """

    def __init__(self, db: AsyncSession, owner_id: UUID | None = None):
        self.db = db
        self.owner_id = owner_id

    def _scope(self) -> list[Any]:
        conditions = [checklist_items.c.deleted_at.is_(None)]
        if self.owner_id is not None:
            conditions.append(checklist_items.c.user_id == self.owner_id)
        return conditions

    async def list_items(
        self,
        patient_id: UUID | None = None,
        completed: bool | None = None,
    ) -> list[ChecklistItemResponse]:
        """Items in scope, newest first."""
        conditions = self._scope()
        if patient_id is not None:
            conditions.append(checklist_items.c.user_id == patient_id)
        if completed is not None:
            conditions.append(checklist_items.c.completed == completed)

        stmt = (
            select(checklist_items)
            .where(and_(*conditions))
            .order_by(checklist_items.c.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [ChecklistItemResponse.model_validate(dict(row._mapping)) for row in result]

    async def get_item(self, item_id: UUID) -> ChecklistItemResponse:
        """
        Get a live checklist item by ID.

        Raises:
            NotFoundException: If the item is missing or soft-deleted
            ForbiddenException: If it belongs to another patient
        """
        stmt = select(checklist_items).where(
            and_(checklist_items.c.id == item_id, checklist_items.c.deleted_at.is_(None))
        )
        row = (await self.db.execute(stmt)).fetchone()

        if not row:
            raise NotFoundException("Checklist item not found")

        if self.owner_id is not None and row.user_id != self.owner_id:
            raise ForbiddenException("Access denied to this checklist item")

        return ChecklistItemResponse.model_validate(dict(row._mapping))

    async def create_item(
        self, data: ChecklistItemCreate, created_by: UUID
    ) -> ChecklistItemResponse:
        values = data.model_dump(exclude={"user_id"}, mode="json")
        values["due_date"] = data.due_date
        values["user_id"] = data.user_id or created_by
        values["created_at"] = values["updated_at"] = datetime.now(UTC)

        stmt = insert(checklist_items).values(**values).returning(checklist_items)
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        logger.info("checklist_item_created", item_id=str(row.id), user_id=str(row.user_id))
        return ChecklistItemResponse.model_validate(dict(row._mapping))

    async def update_item(
        self, item_id: UUID, data: ChecklistItemUpdate
    ) -> ChecklistItemResponse:
        """
        Apply a partial edit; explicit nulls clear the optional fields.

        Raises:
            NotFoundException: If the item is missing
            ForbiddenException: If it belongs to another patient
        """
        current = await self.get_item(item_id)

        values: dict[str, Any] = {
            field: value
            for field, value in data.model_dump(exclude_unset=True, mode="json").items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if "due_date" in values:
            values["due_date"] = data.due_date

        if not values:
            return current

        item = await self._write(item_id, values)
        logger.info("checklist_item_updated", item_id=str(item_id), fields=sorted(values))
        return item

    async def set_completed(self, item_id: UUID, completed: bool) -> ChecklistItemResponse:
        """Tick or untick a task."""
        await self.get_item(item_id)
        item = await self._write(item_id, {"completed": completed})
        logger.info("checklist_item_completed", item_id=str(item_id), completed=completed)
        return item

    async def delete_item(self, item_id: UUID) -> None:
        """Soft delete a checklist item."""
        await self.get_item(item_id)

        now = datetime.now(UTC)
        await self.db.execute(
            update(checklist_items)
            .where(checklist_items.c.id == item_id)
            .values(deleted_at=now, updated_at=now)
        )
        await self.db.commit()
        logger.info("checklist_item_deleted", item_id=str(item_id))

    async def get_progress(self, patient_id: UUID | None = None) -> ChecklistProgress:
        items = await self.list_items(patient_id=patient_id)
        completed = sum(1 for item in items if item.completed)
        return ChecklistProgress(
            total_tasks=len(items),
            completed_tasks=completed,
            completion_percentage=completion_percentage(completed, len(items)),
        )

    async def _write(self, item_id: UUID, values: dict[str, Any]) -> ChecklistItemResponse:
        values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(checklist_items)
            .where(checklist_items.c.id == item_id)
            .values(**values)
            .returning(checklist_items)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        return ChecklistItemResponse.model_validate(dict(row._mapping))
