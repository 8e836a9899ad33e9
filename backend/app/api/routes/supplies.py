"""Supply (catalog) routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func

from app.core.exceptions import Conflict, InvalidOperation, NotFound
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser, Identity, require_permission
from app.core.rbac_policy import Permission
from app.core.responses import list_response
from app.db.session import DbSession
from app.models.category import Category
from app.models.stock import InventoryBatch, StockMovement
from app.models.supplier import Supplier
from app.models.supply import Supply
from app.schemas.supply import SupplyCreate, SupplyUpdate
from app.services import audit_service
from app.services.dashboard_service import DashboardService, serialize_supply

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_supply(db, supply_id: int) -> Supply:
    supply = db.get(Supply, supply_id)
    if supply is None:
        raise NotFound("Supply not found")
    return supply


def _check_references(db, category_id: Optional[int], supplier_id: Optional[int]) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise NotFound("Category not found")
    if supplier_id is not None and db.get(Supplier, supplier_id) is None:
        raise NotFound("Supplier not found")


def _check_unique(db, sku: Optional[str], barcode: Optional[str], exclude_id: Optional[int] = None) -> None:
    """Raise Conflict if another supply already uses the SKU or barcode."""
    if sku is not None:
        query = db.query(Supply.id).filter(Supply.sku == sku)
        if exclude_id is not None:
            query = query.filter(Supply.id != exclude_id)
        if query.first():
            raise Conflict(f"SKU '{sku}' already exists")
    if barcode:
        query = db.query(Supply.id).filter(Supply.barcode == barcode)
        if exclude_id is not None:
            query = query.filter(Supply.id != exclude_id)
        if query.first():
            raise Conflict(f"Barcode '{barcode}' already exists")


@router.get("/")
@limiter.limit("60/minute")
def list_supplies(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    category_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    low_stock_only: bool = False,
):
    """List active supplies with stock, status and expiry figures, most urgent first."""
    items = DashboardService(db).list_supplies(
        category_id=category_id, search=search, low_stock_only=low_stock_only
    )
    return list_response(items)


@router.get("/{supply_id}")
@limiter.limit("60/minute")
def get_supply(request: Request, supply_id: int, db: DbSession, current_user: CurrentUser):
    """Supply detail with batches (FEFO order), recent movements and analytics."""
    return DashboardService(db).supply_detail(supply_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_supply(
    request: Request,
    data: SupplyCreate,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.CREATE_SUPPLIES)),
):
    """Create a supply."""
    _check_references(db, data.category_id, data.supplier_id)
    _check_unique(db, data.sku, data.barcode)

    supply = Supply(**data.model_dump(), is_active=True)
    db.add(supply)
    db.flush()
    audit_service.log_action(
        action="CREATE_SUPPLY",
        entity_type="supply",
        entity_id=supply.id,
        user_id=current_user.id,
        new_values=data.model_dump(),
        db=db,
    )
    db.commit()
    db.refresh(supply)
    logger.info(f"Supply {supply.id} '{supply.name}' ({supply.sku}) created by user {current_user.id}")
    return serialize_supply(supply)


@router.put("/{supply_id}")
@limiter.limit("30/minute")
def update_supply(
    request: Request,
    supply_id: int,
    data: SupplyUpdate,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.UPDATE_SUPPLIES)),
):
    """Update a supply."""
    supply = _get_supply(db, supply_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("barcode") == "":
        changes["barcode"] = None

    _check_references(db, changes.get("category_id"), changes.get("supplier_id"))
    _check_unique(db, changes.get("sku"), changes.get("barcode"), exclude_id=supply.id)

    minimum = changes.get("minimum_stock", supply.minimum_stock)
    maximum = changes.get("maximum_stock", supply.maximum_stock)
    if maximum and maximum < minimum:
        raise InvalidOperation("maximum_stock must not be below minimum_stock")

    old_values = {field: getattr(supply, field) for field in changes}
    for field, value in changes.items():
        setattr(supply, field, value)

    audit_service.log_action(
        action="UPDATE_SUPPLY",
        entity_type="supply",
        entity_id=supply.id,
        user_id=current_user.id,
        old_values=old_values,
        new_values=changes,
        db=db,
    )
    db.commit()
    db.refresh(supply)
    return serialize_supply(supply)


@router.delete("/{supply_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_supply(
    request: Request,
    supply_id: int,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.DELETE_SUPPLIES)),
):
    """Delete a supply. Refused while batches or movements reference it."""
    supply = _get_supply(db, supply_id)
    batches = db.query(func.count(InventoryBatch.id)).filter(InventoryBatch.supply_id == supply.id).scalar()
    movements = db.query(func.count(StockMovement.id)).filter(StockMovement.supply_id == supply.id).scalar()
    if batches or movements:
        raise Conflict("Cannot delete supply with existing batches or stock movements; deactivate it instead")

    audit_service.log_action(
        action="DELETE_SUPPLY",
        entity_type="supply",
        entity_id=supply.id,
        user_id=current_user.id,
        old_values={"name": supply.name, "sku": supply.sku},
        db=db,
    )
    db.delete(supply)
    db.commit()
    logger.info(f"Supply {supply_id} deleted by user {current_user.id}")
