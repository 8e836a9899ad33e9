"""Alert routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser, Identity, RoleUser, require_permission
from app.core.rbac_policy import Permission
from app.core.responses import list_response
from app.db.session import DbSession
from app.models.alert import AlertSeverity
from app.schemas.alert import AlertResponse, SweepResult
from app.services.alert_service import AlertService, serialize_alert
from app.services.scheduler_service import scheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_alerts(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    unread_only: bool = False,
    severity: Optional[AlertSeverity] = None,
    include_resolved: bool = False,
    limit: int = Query(50, ge=1, le=50),
):
    """Open alerts, newest first."""
    alerts = AlertService(db).list_alerts(
        unread_only=unread_only,
        severity=severity,
        include_resolved=include_resolved,
        limit=limit,
    )
    return list_response([serialize_alert(a) for a in alerts])


@router.post("/sweep", response_model=SweepResult)
@limiter.limit("30/minute")
def run_sweep(
    request: Request,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.CREATE_ALERTS)),
):
    """Run the low-stock and expiration sweeps now."""
    service = AlertService(db)
    low_stock = service.generate_low_stock_alerts()
    expiration = service.generate_expiration_alerts()
    db.commit()
    logger.info(
        f"Alert sweep by user {current_user.id}: {len(low_stock)} low-stock, "
        f"{len(expiration)} expiration"
    )
    return {
        "low_stock": [serialize_alert(a) for a in low_stock],
        "expiration": [serialize_alert(a) for a in expiration],
        "created": len(low_stock) + len(expiration),
    }


@router.get("/scheduler")
@limiter.limit("60/minute")
def scheduler_status(request: Request, current_user: CurrentUser):
    """Background sweep scheduler status."""
    return {"running": scheduler.running, "tasks": scheduler.get_status()}


@router.post("/{alert_id}/read", response_model=AlertResponse)
@limiter.limit("30/minute")
def mark_read(request: Request, alert_id: int, db: DbSession, current_user: RoleUser):
    """Mark an alert as read."""
    alert = AlertService(db).mark_read(alert_id)
    db.commit()
    db.refresh(alert)
    return serialize_alert(alert)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
@limiter.limit("30/minute")
def resolve_alert(request: Request, alert_id: int, db: DbSession, current_user: RoleUser):
    """Resolve an alert, recording who resolved it and when."""
    alert = AlertService(db).resolve(alert_id, current_user.id)
    db.commit()
    db.refresh(alert)
    logger.info(f"Alert {alert_id} resolved by user {current_user.id}")
    return serialize_alert(alert)
