"""Tests for roles, the session manager and the profile endpoints."""

from uuid import uuid4

import pytest
import structlog
from httpx import AsyncClient

from surgery_support.core.exceptions import (
    ForbiddenException,
    UnauthorizedException,
)
from surgery_support.core.roles import (
    Capability,
    RoleName,
    has_capability,
    is_care_team,
    parse_role,
    role_permissions,
)
from surgery_support.services.session_service import (
    SessionEvent,
    SessionManager,
    bind_log_context,
)


class FakeUserService:
    """In-memory stand-in for UserService."""

    users: dict = {}
    touched: list = []

    @classmethod
    async def get_user_by_id(cls, db, user_id):
        return cls.users.get(user_id)

    @classmethod
    async def touch_last_activity(cls, db, user_id):
        cls.touched.append(user_id)


def profile(role_name: str | None, is_active: bool = True, full_name: str | None = "Nina Holm"):
    user_id = uuid4()
    return {
        "id": user_id,
        "email": "nina.nurse@surgerysupport.io",
        "full_name": full_name,
        "is_active": is_active,
        "role": {"id": uuid4(), "name": role_name, "permissions": []} if role_name else None,
    }


@pytest.fixture(autouse=True)
def reset_fake_users():
    FakeUserService.users = {}
    FakeUserService.touched = []


def register(user: dict) -> dict:
    FakeUserService.users[user["id"]] = user
    return user


def test_parse_role():
    assert parse_role("Nurse") == RoleName.NURSE
    assert parse_role("Surgeon") is None
    assert parse_role(None) is None


def test_capability_table():
    assert has_capability(RoleName.PATIENT, Capability.RESCHEDULE_APPOINTMENTS)
    assert not has_capability(RoleName.PATIENT, Capability.MANAGE_APPOINTMENTS)
    assert has_capability(RoleName.NURSE, Capability.MANAGE_APPOINTMENTS)
    assert not has_capability(RoleName.SALES, Capability.RESCHEDULE_APPOINTMENTS)
    assert not has_capability(None, Capability.VIEW_OWN_APPOINTMENTS)


def test_care_team_membership():
    assert is_care_team(RoleName.SALES)
    assert not is_care_team(RoleName.PATIENT)
    assert not is_care_team(None)


def test_role_permissions_are_sorted_strings():
    permissions = role_permissions(RoleName.PATIENT)
    assert permissions == sorted(permissions)
    assert "reschedule:appointments" in permissions


@pytest.mark.asyncio
async def test_initialize_emits_signed_in():
    user = register(profile("Nurse"))
    session = SessionManager(db=None, user_service=FakeUserService)
    events = []
    session.subscribe(lambda event, s: events.append((event, s.role)))

    await session.initialize(user["id"])

    assert events == [(SessionEvent.SIGNED_IN, RoleName.NURSE)]
    assert FakeUserService.touched == [user["id"]]
    assert session.is_care_team
    assert not session.is_patient
    assert session.has_role(RoleName.NURSE, RoleName.CLINIC_ADMINISTRATOR)
    assert session.display_name == "Nina Holm"


@pytest.mark.asyncio
async def test_unsubscribe_stops_events():
    user = register(profile("Patient"))
    session = SessionManager(db=None, user_service=FakeUserService)
    events = []
    unsubscribe = session.subscribe(lambda event, s: events.append(event))

    await session.initialize(user["id"])
    unsubscribe()
    session.teardown()

    assert events == [SessionEvent.SIGNED_IN]
    assert session.user is None


@pytest.mark.asyncio
async def test_initialize_unknown_user():
    session = SessionManager(db=None, user_service=FakeUserService)
    with pytest.raises(UnauthorizedException):
        await session.initialize(uuid4())


@pytest.mark.asyncio
async def test_initialize_deactivated_user():
    user = register(profile("Patient", is_active=False))
    session = SessionManager(db=None, user_service=FakeUserService)
    with pytest.raises(ForbiddenException):
        await session.initialize(user["id"])


@pytest.mark.asyncio
async def test_refresh_picks_up_role_change():
    user = register(profile("Patient"))
    session = SessionManager(db=None, user_service=FakeUserService)
    events = []
    session.subscribe(lambda event, s: events.append(event))
    await session.initialize(user["id"])

    FakeUserService.users[user["id"]] = {**user, "role": {"id": uuid4(), "name": "Nurse"}}
    await session.refresh()

    assert session.role == RoleName.NURSE
    assert events == [SessionEvent.SIGNED_IN, SessionEvent.REFRESHED]


@pytest.mark.asyncio
async def test_unknown_role_has_no_capabilities():
    user = register(profile("Surgeon", full_name=None))
    session = SessionManager(db=None, user_service=FakeUserService)
    await session.initialize(user["id"])

    assert session.role is None
    assert session.display_name == "nina.nurse@surgerysupport.io"
    with pytest.raises(ForbiddenException):
        session.require(Capability.VIEW_OWN_APPOINTMENTS)


@pytest.mark.asyncio
async def test_bind_log_context():
    user = register(profile("Nurse"))
    session = SessionManager(db=None, user_service=FakeUserService)
    session.subscribe(bind_log_context)
    structlog.contextvars.clear_contextvars()

    await session.initialize(user["id"])
    bound = structlog.contextvars.get_contextvars()
    assert bound == {"user_id": str(user["id"]), "role": "Nurse"}

    session.teardown()
    assert structlog.contextvars.get_contextvars() == {}


@pytest.mark.asyncio
async def test_me_endpoint(client: AsyncClient, patient_headers: dict, patient) -> None:
    response = await client.get("/api/v1/users/me", headers=patient_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(patient)
    assert data["email"] == "sofia.patient@surgerysupport.io"
    assert data["role"]["name"] == "Patient"
    assert "reschedule:appointments" in data["role"]["permissions"]


@pytest.mark.asyncio
async def test_refresh_endpoint(client: AsyncClient, nurse_headers: dict) -> None:
    response = await client.post("/api/v1/users/me/refresh", headers=nurse_headers)
    assert response.status_code == 200
    assert response.json()["role"]["name"] == "Nurse"
