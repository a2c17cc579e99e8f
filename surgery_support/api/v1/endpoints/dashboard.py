"""Dashboard endpoint."""

from fastapi import APIRouter, Query

from surgery_support.dependencies import CurrentSession, DatabaseSession
from surgery_support.schemas.dashboard import DashboardResponse
from surgery_support.services.dashboard_service import DashboardShell

router = APIRouter()


@router.get("", response_model=DashboardResponse, summary="Compose dashboard")
async def get_dashboard(
    session: CurrentSession,
    db: DatabaseSession,
    tab: str | None = Query(None, description="Patient dashboard tab"),
) -> DashboardResponse:
    """
    Dashboard for the current user's role.

    Staff roles get the care-team dashboard; patients, and users whose role
    cannot be determined, get the tabbed patient dashboard.
    """
    shell = DashboardShell(session, db)
    shell.navigate(tab)
    return await shell.render()
