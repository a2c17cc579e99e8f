"""Medication endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from surgery_support.core.roles import Capability
from surgery_support.dependencies import CurrentSession, MedicationServiceDep
from surgery_support.schemas.medications import (
    MedicationCreate,
    MedicationResponse,
    MedicationUpdate,
)

router = APIRouter(prefix="/medications", tags=["Medications"])

STAFF_ONLY = "Only clinical staff can manage medications"


@router.get("", response_model=list[MedicationResponse], summary="List medications")
async def list_medications(
    service: MedicationServiceDep,
    patient_id: UUID | None = Query(None),
    active_on: date | None = Query(None, description="Only courses running on this date"),
) -> list[MedicationResponse]:
    """Medications visible to the current user, newest first."""
    return await service.list_medications(patient_id=patient_id, active_on=active_on)


@router.post(
    "",
    response_model=MedicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create medication",
)
async def create_medication(
    data: MedicationCreate,
    session: CurrentSession,
    service: MedicationServiceDep,
) -> MedicationResponse:
    """Record a medication course for a patient. Clinical staff only."""
    session.require(Capability.MANAGE_CARE_RECORDS, STAFF_ONLY)
    return await service.create_medication(data, created_by=session.user_id)


@router.get("/{medication_id}", response_model=MedicationResponse, summary="Get medication")
async def get_medication(
    medication_id: UUID,
    service: MedicationServiceDep,
) -> MedicationResponse:
    return await service.get_medication(medication_id)


@router.put("/{medication_id}", response_model=MedicationResponse, summary="Update medication")
async def update_medication(
    medication_id: UUID,
    data: MedicationUpdate,
    session: CurrentSession,
    service: MedicationServiceDep,
) -> MedicationResponse:
    """
    Edit a medication course. Clinical staff only.

    Raises:
        ValidationException: If the course would end before it starts
    """
    session.require(Capability.MANAGE_CARE_RECORDS, STAFF_ONLY)
    return await service.update_medication(medication_id, data)


@router.delete(
    "/{medication_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete medication",
)
async def delete_medication(
    medication_id: UUID,
    session: CurrentSession,
    service: MedicationServiceDep,
) -> None:
    session.require(Capability.MANAGE_CARE_RECORDS, STAFF_ONLY)
    await service.delete_medication(medication_id)
