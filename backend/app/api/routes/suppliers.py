"""Supplier routes."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func

from app.core.exceptions import Conflict, NotFound
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser, Identity, require_permission
from app.core.rbac_policy import Permission
from app.core.responses import list_response
from app.db.session import DbSession
from app.models.supplier import Supplier
from app.models.supply import Supply
from app.schemas.supplier import SupplierCreate, SupplierResponse, SupplierUpdate
from app.services import audit_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _supplier_dict(supplier: Supplier, supply_count: int = 0) -> dict:
    response = SupplierResponse.model_validate(supplier)
    response.supply_count = supply_count
    return response.model_dump(mode="json")


def _get_supplier(db, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFound("Supplier not found")
    return supplier


def _supply_count(db, supplier_id: int) -> int:
    return db.query(func.count(Supply.id)).filter(Supply.supplier_id == supplier_id).scalar() or 0


@router.get("/")
@limiter.limit("60/minute")
def list_suppliers(request: Request, db: DbSession, current_user: CurrentUser, include_inactive: bool = False):
    """List suppliers sorted by name, with the number of supplies from each."""
    counts = dict(
        db.query(Supply.supplier_id, func.count(Supply.id))
        .filter(Supply.supplier_id.isnot(None))
        .group_by(Supply.supplier_id)
        .all()
    )
    query = db.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    suppliers = query.order_by(Supplier.name).all()
    return list_response([_supplier_dict(s, counts.get(s.id, 0)) for s in suppliers])


@router.get("/{supplier_id}")
@limiter.limit("60/minute")
def get_supplier(request: Request, supplier_id: int, db: DbSession, current_user: CurrentUser):
    """Get a supplier."""
    supplier = _get_supplier(db, supplier_id)
    return _supplier_dict(supplier, _supply_count(db, supplier.id))


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_supplier(
    request: Request,
    data: SupplierCreate,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.CREATE_SUPPLIERS)),
):
    """Create a supplier."""
    supplier = Supplier(**data.model_dump(), is_active=True)
    db.add(supplier)
    db.flush()
    audit_service.log_action(
        action="CREATE_SUPPLIER",
        entity_type="supplier",
        entity_id=supplier.id,
        user_id=current_user.id,
        new_values=data.model_dump(),
        db=db,
    )
    db.commit()
    db.refresh(supplier)
    logger.info(f"Supplier {supplier.id} '{supplier.name}' created by user {current_user.id}")
    return _supplier_dict(supplier)


@router.put("/{supplier_id}")
@limiter.limit("30/minute")
def update_supplier(
    request: Request,
    supplier_id: int,
    data: SupplierUpdate,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.UPDATE_SUPPLIERS)),
):
    """Update a supplier."""
    supplier = _get_supplier(db, supplier_id)
    changes = data.model_dump(exclude_unset=True)
    old_values = {field: getattr(supplier, field) for field in changes}
    for field, value in changes.items():
        setattr(supplier, field, value)

    audit_service.log_action(
        action="UPDATE_SUPPLIER",
        entity_type="supplier",
        entity_id=supplier.id,
        user_id=current_user.id,
        old_values=old_values,
        new_values=changes,
        db=db,
    )
    db.commit()
    db.refresh(supplier)
    return _supplier_dict(supplier, _supply_count(db, supplier.id))


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_supplier(
    request: Request,
    supplier_id: int,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.DELETE_SUPPLIERS)),
):
    """Delete a supplier. Refused while any supply references it."""
    supplier = _get_supplier(db, supplier_id)
    in_use = _supply_count(db, supplier.id)
    if in_use:
        raise Conflict(f"Cannot delete supplier with {in_use} existing supplies")

    audit_service.log_action(
        action="DELETE_SUPPLIER",
        entity_type="supplier",
        entity_id=supplier.id,
        user_id=current_user.id,
        old_values={"name": supplier.name},
        db=db,
    )
    db.delete(supplier)
    db.commit()
    logger.info(f"Supplier {supplier_id} deleted by user {current_user.id}")
