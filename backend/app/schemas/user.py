"""User role schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.core.rbac_policy import Role


class RoleInitRequest(BaseModel):
    """Pick the caller's own role."""

    role: Role
    department: Optional[str] = Field(None, max_length=100)


class RoleUpdateRequest(BaseModel):
    """Change another user's role (admin)."""

    role: Role
    department: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class UserRoleResponse(BaseModel):
    """Role record response schema."""

    id: int
    user_id: int
    role: Role
    permissions: list[str]
    department: Optional[str] = None
    is_active: bool

    model_config = {"from_attributes": True}
