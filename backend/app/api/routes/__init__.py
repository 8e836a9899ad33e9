"""API routes."""

from fastapi import APIRouter

from app.api.routes import (
    alerts,
    analytics,
    audit_logs,
    auth,
    categories,
    inventory,
    roles,
    suppliers,
    supplies,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(roles.router, prefix="/roles", tags=["roles"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(supplies.router, prefix="/supplies", tags=["supplies"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory", "stock"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])
