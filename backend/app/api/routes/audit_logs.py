"""Audit logs API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy import func

from app.core.rate_limit import limiter
from app.core.rbac import Identity, require_permission
from app.core.rbac_policy import Permission
from app.core.responses import paginated_response
from app.db.session import DbSession
from app.models.audit import AuditLog
from app.models.user import User

router = APIRouter()


class AuditLogEntry(BaseModel):
    id: int
    timestamp: str
    user_id: Optional[int] = None
    user_name: str
    action: str
    entity_type: str
    entity_id: str
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    ip_address: Optional[str] = None


def _row_to_entry(entry: AuditLog, names: dict) -> dict:
    return AuditLogEntry(
        id=entry.id,
        timestamp=entry.created_at.isoformat() + "Z" if entry.created_at else "",
        user_id=entry.user_id,
        user_name=names.get(entry.user_id, ""),
        action=entry.action,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id or "",
        old_values=entry.old_values,
        new_values=entry.new_values,
        ip_address=entry.ip_address,
    ).model_dump()


@router.get("/")
@limiter.limit("60/minute")
def get_audit_logs(
    request: Request,
    db: DbSession,
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: Identity = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
):
    """Get audit logs with filters, newest first."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)

    total = query.with_entities(func.count(AuditLog.id)).scalar() or 0
    rows = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()

    user_ids = {r.user_id for r in rows if r.user_id is not None}
    names = {}
    if user_ids:
        names = {
            u.id: (u.name or u.email)
            for u in db.query(User).filter(User.id.in_(user_ids)).all()
        }
    return paginated_response([_row_to_entry(r, names) for r in rows], total, skip, limit)
