"""Role-based dashboard composition."""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.roles import Capability, RoleName, is_care_team
from surgery_support.schemas.dashboard import (
    CalendarContent,
    CareTeamContent,
    CareTeamStats,
    ChecklistContent,
    DashboardResponse,
    DashboardView,
    MedicationsContent,
    MessagesContent,
    OverviewContent,
    PatientTab,
)
from surgery_support.services.appointment_service import AppointmentService
from surgery_support.services.appointment_store import AppointmentStore
from surgery_support.services.checklist_service import ChecklistService, completion_percentage
from surgery_support.services.medication_service import MedicationService
from surgery_support.services.message_service import MessageService
from surgery_support.services.session_service import SessionManager
from surgery_support.services.user_service import UserService

logger = structlog.get_logger(__name__)

PATIENT_TITLE = "Patient Dashboard"
CARE_TEAM_TITLE = "Care Team Dashboard"


def resolve_view(role: RoleName | None) -> DashboardView:
    """Care-team view for staff roles, patient view for everyone else."""
    if role == RoleName.PATIENT:
        return DashboardView.PATIENT
    if is_care_team(role):
        return DashboardView.CARE_TEAM
    return DashboardView.PATIENT


class DashboardShell:
    """Composes the dashboard for one session.

    Tab navigation is local state: ``navigate`` only changes ``active_tab``;
    content is loaded for the active tab when :meth:`render` runs. The
    documents tab has no content here; files are served by storage.
    """

    def __init__(self, session: SessionManager, db: AsyncSession):
        self.session = session
        self.db = db
        self.view = resolve_view(session.role)
        self.active_tab = PatientTab.OVERVIEW

    def navigate(self, tab: str | PatientTab | None) -> PatientTab:
        """Switch tabs; unknown names fall back to the overview."""
        try:
            self.active_tab = PatientTab(tab) if tab else PatientTab.OVERVIEW
        except ValueError:
            self.active_tab = PatientTab.OVERVIEW
        return self.active_tab

    async def render(self, now: datetime | None = None) -> DashboardResponse:
        now = now or datetime.now()
        role = self.session.role

        if self.view == DashboardView.CARE_TEAM:
            logger.info("dashboard_rendered", view=self.view.value)
            return DashboardResponse(
                view=self.view,
                title=CARE_TEAM_TITLE,
                role=role.value if role else None,
                display_name=self.session.display_name,
                care_team=await self._care_team_content(now),
            )

        response = DashboardResponse(
            view=self.view,
            title=PATIENT_TITLE,
            role=role.value if role else None,
            display_name=self.session.display_name,
            tabs=list(PatientTab),
            active_tab=self.active_tab,
        )

        # The patient view always shows the signed-in user's own records
        owner_id = self.session.user_id
        if self.active_tab == PatientTab.OVERVIEW:
            response.overview = await self._overview_content(owner_id, now)
        elif self.active_tab == PatientTab.CALENDAR:
            response.calendar = await self._calendar_content(owner_id, now)
        elif self.active_tab == PatientTab.CHECKLIST:
            response.checklist = await self._checklist_content(owner_id)
        elif self.active_tab == PatientTab.MEDICATIONS:
            response.medications = await self._medications_content(owner_id, now)
        elif self.active_tab == PatientTab.MESSAGES:
            response.messages = await self._messages_content(owner_id)

        logger.info("dashboard_rendered", view=self.view.value, tab=self.active_tab.value)
        return response

    async def _load_appointments(self, owner_id: UUID) -> AppointmentStore:
        store = AppointmentStore(AppointmentService(self.db, owner_id=owner_id))
        await store.load()
        return store

    async def _overview_content(self, owner_id: UUID, now: datetime) -> OverviewContent:
        store = await self._load_appointments(owner_id)
        upcoming = store.upcoming(now)
        progress = await ChecklistService(self.db, owner_id=owner_id).get_progress()
        medications = await MedicationService(self.db, owner_id=owner_id).list_medications()
        return OverviewContent(
            total_appointments=len(store.appointments),
            upcoming_appointments=len(upcoming),
            next_appointment=upcoming[0] if upcoming else None,
            **progress.model_dump(),
            total_medications=len(medications),
        )

    async def _calendar_content(self, owner_id: UUID, now: datetime) -> CalendarContent:
        store = await self._load_appointments(owner_id)
        return CalendarContent(
            upcoming=store.upcoming(now),
            past=store.past(now),
            virtual_count=sum(1 for a in store.appointments if a.is_virtual),
        )

    async def _checklist_content(self, owner_id: UUID) -> ChecklistContent:
        items = await ChecklistService(self.db, owner_id=owner_id).list_items()
        done = [item for item in items if item.completed]
        return ChecklistContent(
            pending=[item for item in items if not item.completed],
            done=done,
            total_tasks=len(items),
            completed_tasks=len(done),
            completion_percentage=completion_percentage(len(done), len(items)),
        )

    async def _medications_content(self, owner_id: UUID, now: datetime) -> MedicationsContent:
        today = now.date()
        items = await MedicationService(self.db, owner_id=owner_id).list_medications()
        return MedicationsContent(
            current=[m for m in items if m.end_date is None or m.end_date >= today],
            past=[m for m in items if m.end_date is not None and m.end_date < today],
        )

    async def _messages_content(self, owner_id: UUID) -> MessagesContent:
        service = MessageService(self.db, user_id=self.session.user_id, owner_id=owner_id)
        summaries = await service.list_conversations()
        return MessagesContent(
            conversations=summaries,
            unread_conversations=sum(1 for summary in summaries if summary.has_unread),
        )

    async def _care_team_content(self, now: datetime) -> CareTeamContent:
        if self.session.has_capability(Capability.VIEW_PATIENT_ROSTER):
            patients = await UserService.get_patient_roster(self.db, now.date())
        else:
            patients = []
        stats = await AppointmentService(self.db).get_appointment_stats(now.date())
        return CareTeamContent(
            stats=CareTeamStats(
                total_patients=len(patients),
                active_patients=sum(1 for p in patients if p.status == "active"),
                upcoming_appointments=stats.upcoming,
            ),
            patients=patients,
        )
