"""Dashboard composition schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from surgery_support.schemas.appointments import AppointmentResponse
from surgery_support.schemas.checklist import ChecklistItemResponse, ChecklistProgress
from surgery_support.schemas.medications import MedicationResponse
from surgery_support.schemas.messages import ConversationSummary


class DashboardView(str, Enum):
    """Which dashboard a user gets."""

    PATIENT = "patient"
    CARE_TEAM = "care_team"


class PatientTab(str, Enum):
    """Tabs of the patient dashboard, in sidebar order."""

    OVERVIEW = "overview"
    CHECKLIST = "checklist"
    CALENDAR = "calendar"
    MESSAGES = "messages"
    DOCUMENTS = "documents"
    MEDICATIONS = "medications"


class OverviewContent(BaseModel):
    """Overview tab figures."""

    total_appointments: int
    upcoming_appointments: int
    next_appointment: AppointmentResponse | None = None
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_percentage: int = 0
    total_medications: int = 0


class CalendarContent(BaseModel):
    """Calendar tab lists."""

    upcoming: list[AppointmentResponse]
    past: list[AppointmentResponse]
    virtual_count: int


class ChecklistContent(ChecklistProgress):
    """Checklist tab: open tasks first, then completed ones."""

    pending: list[ChecklistItemResponse]
    done: list[ChecklistItemResponse]


class MedicationsContent(BaseModel):
    """Medications tab, split on whether the course has ended."""

    current: list[MedicationResponse]
    past: list[MedicationResponse]


class MessagesContent(BaseModel):
    conversations: list[ConversationSummary]
    unread_conversations: int


class CareTeamStats(BaseModel):
    """Aggregate figures on the care-team dashboard."""

    total_patients: int
    active_patients: int
    upcoming_appointments: int


class PatientSummary(BaseModel):
    """One row of the patient roster."""

    id: UUID
    name: str
    email: str
    upcoming_appointments: int
    status: str


class CareTeamContent(BaseModel):
    """Care-team dashboard payload."""

    stats: CareTeamStats
    patients: list[PatientSummary]


class DashboardResponse(BaseModel):
    """Composed dashboard for the current user."""

    view: DashboardView
    title: str
    role: str | None = None
    display_name: str
    tabs: list[PatientTab] = []
    active_tab: PatientTab | None = None
    overview: OverviewContent | None = None
    calendar: CalendarContent | None = None
    checklist: ChecklistContent | None = None
    medications: MedicationsContent | None = None
    messages: MessagesContent | None = None
    care_team: CareTeamContent | None = None
