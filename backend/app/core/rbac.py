"""Role-Based Access Control (RBAC) utilities."""

from typing import Annotated, FrozenSet, Optional

from fastapi import Depends, Request

from app.core.exceptions import NotAuthenticated, NotFound, PermissionDenied
from app.core.rbac_policy import Permission, Role, permissions_for
from app.core.security import decode_access_token
from app.db.session import DbSession
from app.models.user import User, UserRole


class Identity:
    """The resolved caller of a request.

    Attributes:
        user: The authenticated user row.
        role_record: The user's role record, or None before a role is chosen.
        id: Alias for user.id.
    """

    def __init__(self, user: User, role_record: Optional[UserRole] = None):
        self.user = user
        self.id = user.id
        self.role_record = role_record

    @property
    def role(self) -> Optional[Role]:
        if self.role_record is None:
            return None
        return self.role_record.role_enum

    @property
    def permissions(self) -> FrozenSet[Permission]:
        if self.role_record is None or not self.role_record.is_active:
            return frozenset()
        return permissions_for(self.role_record.role_enum)

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions


def _token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return token
    return request.cookies.get("access_token")


def get_current_user(request: Request, db: DbSession) -> Identity:
    """Get the current authenticated user from the bearer token.

    Checks in order:
    1. Authorization: Bearer <token> header
    2. access_token cookie
    """
    token = _token_from_request(request)
    payload = decode_access_token(token) if token else None
    if payload is None or payload.get("sub") is None:
        raise NotAuthenticated()

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise NotAuthenticated("Invalid token payload")

    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if not user.is_active:
        raise NotAuthenticated("User account is disabled")

    role_record = db.query(UserRole).filter(UserRole.user_id == user.id).first()
    return Identity(user, role_record)


CurrentUser = Annotated[Identity, Depends(get_current_user)]


def get_current_identity_with_role(current_user: CurrentUser) -> Identity:
    """Require that the caller has a role record."""
    if current_user.role_record is None:
        raise NotFound("User role not found")
    return current_user


RoleUser = Annotated[Identity, Depends(get_current_identity_with_role)]


def require_permission(permission: Permission):
    """Dependency to require a specific permission."""

    def permission_checker(current_user: RoleUser) -> Identity:
        if not current_user.has_permission(permission):
            raise PermissionDenied(f"Permission '{permission.value}' required")
        return current_user

    return permission_checker


def check_permission(identity: Identity, permission: Permission) -> None:
    """Raise PermissionDenied unless the identity holds the permission."""
    if not identity.has_permission(permission):
        raise PermissionDenied(f"Permission '{permission.value}' required")
