"""User role routes: choose a role, read it, and (admin) change others'."""

import logging

from fastapi import APIRouter, Request, status

from app.core.exceptions import NotFound
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser, RoleUser, check_permission
from app.core.rbac_policy import Permission, permission_list
from app.db.session import DbSession
from app.models.user import User, UserRole
from app.schemas.user import RoleInitRequest, RoleUpdateRequest, UserRoleResponse
from app.services import audit_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/me", response_model=UserRoleResponse)
@limiter.limit("30/minute")
def initialize_role(request: Request, data: RoleInitRequest, db: DbSession, current_user: CurrentUser):
    """Pick the caller's role. Returns the existing record if one is already set."""
    if current_user.role_record is not None:
        return current_user.role_record

    record = UserRole(
        user_id=current_user.id,
        role=data.role.value,
        permissions=permission_list(data.role),
        department=data.department,
        is_active=True,
    )
    db.add(record)
    db.flush()
    audit_service.log_action(
        action="INITIALIZE_ROLE",
        entity_type="user_role",
        entity_id=record.id,
        user_id=current_user.id,
        new_values={"role": record.role, "department": record.department},
        db=db,
    )
    db.commit()
    db.refresh(record)
    logger.info(f"User {current_user.id} initialized role {record.role}")
    return record


@router.get("/me", response_model=UserRoleResponse)
@limiter.limit("60/minute")
def get_my_role(request: Request, current_user: RoleUser):
    """Get the caller's role record."""
    return current_user.role_record


@router.put("/{user_id}", response_model=UserRoleResponse, status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
def update_user_role(
    request: Request,
    user_id: int,
    data: RoleUpdateRequest,
    db: DbSession,
    current_user: RoleUser,
):
    """Change another user's role (requires manage_users)."""
    check_permission(current_user, Permission.MANAGE_USERS)

    if db.get(User, user_id) is None:
        raise NotFound("User not found")
    record = db.query(UserRole).filter(UserRole.user_id == user_id).first()
    if record is None:
        raise NotFound("User role not found")

    old_values = {"role": record.role, "department": record.department, "is_active": record.is_active}
    record.role = data.role.value
    record.permissions = permission_list(data.role)
    if data.department is not None:
        record.department = data.department
    if data.is_active is not None:
        record.is_active = data.is_active

    audit_service.log_action(
        action="UPDATE_USER_ROLE",
        entity_type="user_role",
        entity_id=record.id,
        user_id=current_user.id,
        old_values=old_values,
        new_values={"role": record.role, "department": record.department, "is_active": record.is_active},
        db=db,
    )
    db.commit()
    db.refresh(record)
    logger.info(f"User {current_user.id} set role of user {user_id} to {record.role}")
    return record
