"""Analytics routes: dashboard, reorder suggestions, inventory analytics, usage trends."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser
from app.core.responses import list_response
from app.db.session import DbSession
from app.services.dashboard_service import DashboardService
from app.services.forecasting_service import ForecastingService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard")
@limiter.limit("60/minute")
def dashboard(request: Request, db: DbSession, current_user: CurrentUser):
    """Headline stock figures, newest open alerts and newest movements."""
    return DashboardService(db).dashboard_stats()


@router.get("/reorder-suggestions")
@limiter.limit("60/minute")
def reorder_suggestions(request: Request, db: DbSession, current_user: CurrentUser):
    """Supplies projected to run out within their supplier's lead time."""
    return list_response(ForecastingService(db).reorder_suggestions())


@router.get("/inventory")
@limiter.limit("60/minute")
def inventory_analytics(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    period: Literal["week", "month", "quarter"] = "month",
):
    """Movement totals, stock health and usage anomalies over a period."""
    return ForecastingService(db).inventory_analytics(period=period)


@router.get("/usage-trends")
@limiter.limit("60/minute")
def usage_trends(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    days: int = Query(30, ge=1, le=365),
    supply_id: Optional[int] = None,
):
    """Daily usage totals, oldest first."""
    return list_response(DashboardService(db).usage_trends(days=days, supply_id=supply_id))
