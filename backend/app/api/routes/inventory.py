"""Inventory routes: batches, stock movements, expiring items, barcode scans."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.exceptions import NotFound
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser, Identity, RoleUser, check_permission, require_permission
from app.core.rbac_policy import Permission
from app.core.responses import list_response
from app.db.session import DbSession
from app.models.stock import MovementType
from app.models.supply import Supply
from app.schemas.stock import (
    BarcodeScanRequest,
    BatchCreate,
    BatchResponse,
    MovementCreate,
    MovementResult,
)
from app.services.dashboard_service import (
    DashboardService,
    serialize_batch,
    serialize_movement,
    serialize_supply,
)
from app.services.movement_service import MovementService
from app.services.stock_service import batches_for_supply, fefo_sort

logger = logging.getLogger(__name__)

router = APIRouter()

RequireStockMovements = Depends(require_permission(Permission.STOCK_MOVEMENTS))


# ==================== BATCHES ====================

@router.get("/batches")
@limiter.limit("60/minute")
def list_batches(request: Request, supply_id: int, db: DbSession, current_user: CurrentUser):
    """List the batches of a supply in FEFO order."""
    if db.get(Supply, supply_id) is None:
        raise NotFound("Supply not found")
    return list_response([serialize_batch(b) for b in fefo_sort(batches_for_supply(db, supply_id))])


@router.post("/batches", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_batch(
    request: Request,
    data: BatchCreate,
    db: DbSession,
    current_user: Identity = RequireStockMovements,
):
    """Receive a new batch of a supply."""
    batch = MovementService(db).add_batch(
        supply_id=data.supply_id,
        batch_number=data.batch_number,
        quantity=data.quantity,
        location=data.location,
        expiration_date=data.expiration_date,
        unit_cost=data.unit_cost,
        notes=data.notes,
        user_id=current_user.id,
    )
    db.commit()
    db.refresh(batch)
    return serialize_batch(batch)


# ==================== MOVEMENTS ====================

@router.post("/movements", response_model=MovementResult, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def record_movement(
    request: Request,
    data: MovementCreate,
    db: DbSession,
    current_user: Identity = RequireStockMovements,
):
    """Record a stock movement against a supply."""
    result = MovementService(db).record_movement(
        supply_id=data.supply_id,
        movement_type=data.movement_type,
        quantity=data.quantity,
        reason=data.reason,
        location=data.location,
        batch_id=data.batch_id,
        notes=data.notes,
        user_id=current_user.id,
    )
    db.commit()
    return result


@router.get("/movements")
@limiter.limit("60/minute")
def movement_history(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    supply_id: Optional[int] = None,
    movement_type: Optional[MovementType] = None,
    limit: int = Query(50, ge=1, le=500),
):
    """Stock movement ledger, newest first."""
    movements = MovementService(db).movement_history(
        supply_id=supply_id, movement_type=movement_type, limit=limit
    )
    return list_response([serialize_movement(m) for m in movements])


# ==================== EXPIRY ====================

@router.get("/expiring")
@limiter.limit("60/minute")
def expiring_items(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    days: int = Query(30, ge=0, le=365),
):
    """Batches with stock expiring within the given number of days."""
    return list_response(DashboardService(db).expiring_items(days=days))


# ==================== BARCODE ====================

@router.post("/scan")
@limiter.limit("30/minute")
def scan_barcode(request: Request, data: BarcodeScanRequest, db: DbSession, current_user: RoleUser):
    """Look up a supply by barcode, or receive/dispense stock against it."""
    if data.action != "lookup":
        check_permission(current_user, Permission.STOCK_MOVEMENTS)

    result = MovementService(db).scan_barcode(
        barcode=data.barcode,
        action=data.action,
        quantity=data.quantity,
        location=data.location,
        user_id=current_user.id,
    )
    if data.action == "lookup":
        return {
            "supply": serialize_supply(result["supply"]),
            "current_stock": result["current_stock"],
            "batches": [serialize_batch(b) for b in result["batches"]],
        }

    db.commit()
    result["supply"] = serialize_supply(result["supply"])
    return result
