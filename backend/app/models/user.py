"""User and role models."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.rbac_policy import Permission, Role, permissions_for
from app.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User account for authentication."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    role_record: Mapped[Optional["UserRole"]] = relationship(
        "UserRole", back_populates="user", uselist=False
    )


class UserRole(Base, TimestampMixin):
    """The role held by a user. One record per user."""

    __tablename__ = "user_roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    # Derived from the role when written; checks always go through permissions_for()
    permissions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="role_record")

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def has_permission(self, permission: Permission) -> bool:
        return permission in permissions_for(self.role_enum)
