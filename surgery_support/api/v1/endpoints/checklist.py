"""Checklist endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from surgery_support.core.roles import Capability
from surgery_support.dependencies import ChecklistServiceDep, CurrentSession
from surgery_support.schemas.checklist import (
    ChecklistCompletion,
    ChecklistItemCreate,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    ChecklistProgress,
)

router = APIRouter(prefix="/checklist", tags=["Checklist"])

STAFF_ONLY = "Only clinical staff can manage checklist items"


@router.get("", response_model=list[ChecklistItemResponse], summary="List checklist items")
async def list_checklist_items(
    service: ChecklistServiceDep,
    patient_id: UUID | None = Query(None),
    completed: bool | None = Query(None),
) -> list[ChecklistItemResponse]:
    """Tasks visible to the current user, newest first."""
    return await service.list_items(patient_id=patient_id, completed=completed)


@router.get("/progress", response_model=ChecklistProgress, summary="Checklist progress")
async def get_checklist_progress(
    service: ChecklistServiceDep,
    patient_id: UUID | None = Query(None),
) -> ChecklistProgress:
    """Completed tasks out of all live tasks."""
    return await service.get_progress(patient_id=patient_id)


@router.post(
    "",
    response_model=ChecklistItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create checklist item",
)
async def create_checklist_item(
    data: ChecklistItemCreate,
    session: CurrentSession,
    service: ChecklistServiceDep,
) -> ChecklistItemResponse:
    """
    Assign a task to a patient. Clinical staff only.

    Args:
        data: Task details, with the patient in ``user_id``
        session: Current session
        service: Scoped checklist service

    Returns:
        Created checklist item
    """
    session.require(Capability.MANAGE_CARE_RECORDS, STAFF_ONLY)
    return await service.create_item(data, created_by=session.user_id)


@router.get("/{item_id}", response_model=ChecklistItemResponse, summary="Get checklist item")
async def get_checklist_item(
    item_id: UUID,
    service: ChecklistServiceDep,
) -> ChecklistItemResponse:
    return await service.get_item(item_id)


@router.put("/{item_id}", response_model=ChecklistItemResponse, summary="Update checklist item")
async def update_checklist_item(
    item_id: UUID,
    data: ChecklistItemUpdate,
    session: CurrentSession,
    service: ChecklistServiceDep,
) -> ChecklistItemResponse:
    """Edit a task. Clinical staff only; patients tick tasks via ``/completion``."""
    session.require(Capability.MANAGE_CARE_RECORDS, STAFF_ONLY)
    return await service.update_item(item_id, data)


@router.put(
    "/{item_id}/completion",
    response_model=ChecklistItemResponse,
    summary="Mark checklist item done or not done",
)
async def set_checklist_item_completion(
    item_id: UUID,
    data: ChecklistCompletion,
    session: CurrentSession,
    service: ChecklistServiceDep,
) -> ChecklistItemResponse:
    session.require(Capability.COMPLETE_CHECKLIST_ITEMS)
    return await service.set_completed(item_id, data.completed)


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete checklist item",
)
async def delete_checklist_item(
    item_id: UUID,
    session: CurrentSession,
    service: ChecklistServiceDep,
) -> None:
    """Soft delete a task. Clinical staff only."""
    session.require(Capability.MANAGE_CARE_RECORDS, STAFF_ONLY)
    await service.delete_item(item_id)
