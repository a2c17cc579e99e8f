"""Per-request session for the authenticated user."""

from collections.abc import Callable
from enum import Enum
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.exceptions import ForbiddenException, UnauthorizedException
from surgery_support.core.roles import (
    Capability,
    RoleName,
    has_capability,
    is_care_team,
    parse_role,
)
from surgery_support.services.user_service import UserService

logger = structlog.get_logger(__name__)


class SessionEvent(str, Enum):
    """Session state changes delivered to listeners."""

    SIGNED_IN = "signed_in"
    REFRESHED = "refreshed"
    SIGNED_OUT = "signed_out"


SessionListener = Callable[[SessionEvent, "SessionManager"], None]


class SessionManager:
    """Holds the current user for the lifetime of a request.

    Listeners registered with :meth:`subscribe` are called on every state
    change; the returned callable removes the listener again.
    """

    def __init__(self, db: AsyncSession, user_service: type[UserService] = UserService):
        self.db = db
        self.user_service = user_service
        self.user: dict | None = None
        self._listeners: list[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    async def initialize(self, user_id: UUID) -> dict:
        """
        Load the user behind a verified token.

        Raises:
            UnauthorizedException: If the profile does not exist
            ForbiddenException: If the profile is deactivated
        """
        self.user = await self._load(user_id)
        await self.user_service.touch_last_activity(self.db, user_id)
        self._emit(SessionEvent.SIGNED_IN)
        return self.user

    async def refresh(self) -> dict:
        """Reload the profile, picking up role changes."""
        if self.user is None:
            raise UnauthorizedException("No active session")
        self.user = await self._load(self.user["id"])
        self._emit(SessionEvent.REFRESHED)
        return self.user

    def teardown(self) -> None:
        if self.user is None:
            return
        self._emit(SessionEvent.SIGNED_OUT)
        self.user = None

    async def _load(self, user_id: UUID) -> dict:
        user = await self.user_service.get_user_by_id(self.db, user_id)
        if not user:
            raise UnauthorizedException("User not found")
        if not user["is_active"]:
            raise ForbiddenException("User account is deactivated")
        return user

    @property
    def user_id(self) -> UUID:
        if self.user is None:
            raise UnauthorizedException("No active session")
        return self.user["id"]

    @property
    def role(self) -> RoleName | None:
        if self.user is None or self.user["role"] is None:
            return None
        return parse_role(self.user["role"]["name"])

    @property
    def is_patient(self) -> bool:
        return self.role == RoleName.PATIENT

    @property
    def is_care_team(self) -> bool:
        return is_care_team(self.role)

    def has_role(self, *role_names: RoleName) -> bool:
        return self.role is not None and self.role in role_names

    def has_capability(self, capability: Capability) -> bool:
        return has_capability(self.role, capability)

    def require(self, capability: Capability, message: str = "Forbidden") -> None:
        """Raise ``ForbiddenException`` unless the role grants ``capability``."""
        if not self.has_capability(capability):
            logger.warning(
                "capability_denied",
                user_id=str(self.user_id),
                capability=capability.value,
            )
            raise ForbiddenException(message)

    @property
    def display_name(self) -> str:
        if self.user is None:
            return ""
        return self.user.get("full_name") or self.user["email"]


def bind_log_context(event: SessionEvent, session: SessionManager) -> None:
    """Session listener tagging log lines with the current user."""
    if event == SessionEvent.SIGNED_OUT:
        structlog.contextvars.unbind_contextvars("user_id", "role")
        return
    role = session.role
    structlog.contextvars.bind_contextvars(
        user_id=str(session.user_id),
        role=role.value if role else None,
    )
