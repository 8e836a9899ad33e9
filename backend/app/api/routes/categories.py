"""Category routes."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func

from app.core.exceptions import Conflict, NotFound
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser, Identity, require_permission
from app.core.rbac_policy import Permission
from app.core.responses import list_response
from app.db.session import DbSession
from app.models.category import Category
from app.models.supply import Supply
from app.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from app.services import audit_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _category_dict(category: Category, supply_count: int = 0) -> dict:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        description=category.description,
        color=category.color,
        supply_count=supply_count,
        created_at=category.created_at,
    ).model_dump(mode="json")


def _get_category(db, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    return category


@router.get("/")
@limiter.limit("60/minute")
def list_categories(request: Request, db: DbSession, current_user: CurrentUser):
    """List categories sorted by name, with the number of supplies in each."""
    counts = dict(
        db.query(Supply.category_id, func.count(Supply.id))
        .filter(Supply.is_active.is_(True))
        .group_by(Supply.category_id)
        .all()
    )
    categories = db.query(Category).order_by(Category.name).all()
    return list_response([_category_dict(c, counts.get(c.id, 0)) for c in categories])


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_category(
    request: Request,
    data: CategoryCreate,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.CREATE_CATEGORIES)),
):
    """Create a category."""
    category = Category(**data.model_dump())
    db.add(category)
    db.flush()
    audit_service.log_action(
        action="CREATE_CATEGORY",
        entity_type="category",
        entity_id=category.id,
        user_id=current_user.id,
        new_values=data.model_dump(),
        db=db,
    )
    db.commit()
    db.refresh(category)
    logger.info(f"Category {category.id} '{category.name}' created by user {current_user.id}")
    return _category_dict(category)


@router.put("/{category_id}")
@limiter.limit("30/minute")
def update_category(
    request: Request,
    category_id: int,
    data: CategoryUpdate,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.UPDATE_CATEGORIES)),
):
    """Update a category."""
    category = _get_category(db, category_id)
    changes = data.model_dump(exclude_unset=True)
    old_values = {field: getattr(category, field) for field in changes}
    for field, value in changes.items():
        setattr(category, field, value)

    audit_service.log_action(
        action="UPDATE_CATEGORY",
        entity_type="category",
        entity_id=category.id,
        user_id=current_user.id,
        old_values=old_values,
        new_values=changes,
        db=db,
    )
    db.commit()
    db.refresh(category)
    count = db.query(func.count(Supply.id)).filter(Supply.category_id == category.id).scalar() or 0
    return _category_dict(category, count)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_category(
    request: Request,
    category_id: int,
    db: DbSession,
    current_user: Identity = Depends(require_permission(Permission.DELETE_CATEGORIES)),
):
    """Delete a category. Refused while any supply references it."""
    category = _get_category(db, category_id)
    in_use = db.query(func.count(Supply.id)).filter(Supply.category_id == category.id).scalar() or 0
    if in_use:
        raise Conflict(f"Cannot delete category with {in_use} existing supplies")

    audit_service.log_action(
        action="DELETE_CATEGORY",
        entity_type="category",
        entity_id=category.id,
        user_id=current_user.id,
        old_values={"name": category.name},
        db=db,
    )
    db.delete(category)
    db.commit()
    logger.info(f"Category {category_id} deleted by user {current_user.id}")
