"""User profile schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RoleResponse(BaseModel):
    """Role attached to a profile."""

    id: UUID
    name: str
    permissions: list[str] = Field(default_factory=list)


class UserProfileResponse(BaseModel):
    """Schema for the current user's profile."""

    id: UUID
    email: EmailStr
    full_name: str | None = None
    phone: str | None = None
    is_active: bool
    role: RoleResponse | None = None
    created_at: datetime
    last_activity_at: datetime | None = None

    model_config = {"from_attributes": True}
