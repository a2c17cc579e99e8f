"""User profile service."""

from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.roles import CARE_TEAM_ROLES, RoleName
from surgery_support.models.appointments import appointments
from surgery_support.models.users import roles, user_profiles
from surgery_support.schemas.dashboard import PatientSummary
from surgery_support.schemas.notifications import NotificationRecipient

# Profiles idle for longer than this are reported as inactive on the roster
ACTIVE_WINDOW_DAYS = 30


def _profile_query():
    return select(
        user_profiles,
        roles.c.name.label("role_name"),
        roles.c.permissions.label("role_permissions"),
    ).select_from(user_profiles.outerjoin(roles, user_profiles.c.role_id == roles.c.id))


def _to_dict(row) -> dict:
    data = dict(row._mapping)
    role_name = data.pop("role_name")
    role_permissions = data.pop("role_permissions")
    data["role"] = (
        {"id": data["role_id"], "name": role_name, "permissions": role_permissions or []}
        if role_name
        else None
    )
    return data


class UserService:
    """Service for user profile operations."""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> dict | None:
        """Profile joined with its role, or None when missing or deleted."""
        query = _profile_query().where(
            and_(user_profiles.c.id == user_id, user_profiles.c.deleted_at.is_(None))
        )
        result = await db.execute(query)
        row = result.fetchone()
        return _to_dict(row) if row else None

    @staticmethod
    async def touch_last_activity(db: AsyncSession, user_id: UUID) -> None:
        """Record that the user just used the portal."""
        await db.execute(
            update(user_profiles)
            .where(user_profiles.c.id == user_id)
            .values(last_activity_at=datetime.now(UTC))
        )
        await db.commit()

    @staticmethod
    async def get_provider_recipient(db: AsyncSession, provider: str) -> NotificationRecipient:
        """
        Resolve an appointment's provider name to a notification recipient.

        Providers are stored as free text on appointments; when no care-team
        profile carries that name the recipient has no contact details and
        is only counted and logged.
        """
        query = _profile_query().where(
            and_(
                user_profiles.c.full_name == provider,
                user_profiles.c.deleted_at.is_(None),
                roles.c.name.in_([role.value for role in CARE_TEAM_ROLES]),
            )
        )
        row = (await db.execute(query)).first()

        if row is None:
            return NotificationRecipient(id=provider, name=provider, role="provider")

        return NotificationRecipient(
            id=str(row.id),
            name=row.full_name or provider,
            email=row.email,
            phone=row.phone,
            role=row.role_name,
        )

    @staticmethod
    async def get_patient_roster(
        db: AsyncSession, today: date | None = None
    ) -> list[PatientSummary]:
        """Every patient profile with its count of upcoming appointments."""
        today = today or date.today()
        upcoming = (
            select(appointments.c.user_id, func.count().label("upcoming"))
            .where(and_(appointments.c.deleted_at.is_(None), appointments.c.date >= today))
            .group_by(appointments.c.user_id)
            .subquery()
        )
        query = (
            select(
                user_profiles.c.id,
                user_profiles.c.full_name,
                user_profiles.c.email,
                user_profiles.c.is_active,
                user_profiles.c.last_activity_at,
                func.coalesce(upcoming.c.upcoming, 0).label("upcoming"),
            )
            .select_from(
                user_profiles.join(roles, user_profiles.c.role_id == roles.c.id).outerjoin(
                    upcoming, upcoming.c.user_id == user_profiles.c.id
                )
            )
            .where(
                and_(
                    roles.c.name == RoleName.PATIENT.value,
                    user_profiles.c.deleted_at.is_(None),
                )
            )
            .order_by(user_profiles.c.full_name.asc())
        )
        rows = (await db.execute(query)).fetchall()

        return [
            PatientSummary(
                id=row.id,
                name=row.full_name or row.email,
                email=row.email,
                upcoming_appointments=row.upcoming,
                status=_patient_status(row.is_active, row.last_activity_at, today),
            )
            for row in rows
        ]


def _patient_status(is_active: bool, last_activity_at: datetime | None, today: date) -> str:
    if not is_active or last_activity_at is None:
        return "inactive"
    if (today - last_activity_at.date()).days > ACTIVE_WINDOW_DAYS:
        return "inactive"
    return "active"
