"""
Settings Router
Scheduler status, on-demand sweeps and the analytics thresholds in effect
"""
import logging

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.routers.deps import get_connections, get_current_user_id, get_engine, get_store, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.connections import ConnectionRegistry
from app.utils.notifier import generate_notifications
from app.utils.recurring import process_due
from app.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/scheduler")
def get_scheduler_settings(user_id: str = Depends(get_current_user_id)):
    """Current scheduler status and the sweep interval."""
    return ok({**get_scheduler_status(), "enabled": settings.SCHEDULER_ENABLED})


@router.post("/scheduler/run")
def run_scheduler_now(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
    connections: ConnectionRegistry = Depends(get_connections),
):
    """Run the periodic sweep for the current user only."""
    logger.info(f"Manual sweep requested by user {user_id}")
    result = process_due(store, user_id)
    created = generate_notifications(store, user_id, connections, engine)
    return ok({
        "processed": len(result["processed"]),
        "deactivated": len(result["deactivated"]),
        "errors": result["errors"],
        "notifications": len(created),
    })


@router.get("/analytics")
def get_analytics_settings(user_id: str = Depends(get_current_user_id)):
    """Thresholds used by insights, budget status and the dashboard."""
    return ok({
        "low_savings_rate": settings.LOW_SAVINGS_RATE,
        "high_savings_rate": settings.HIGH_SAVINGS_RATE,
        "top_category_share": settings.TOP_CATEGORY_SHARE,
        "budget_warning_threshold": settings.BUDGET_WARNING_THRESHOLD,
        "budget_at_risk_threshold": settings.BUDGET_AT_RISK_THRESHOLD,
    })
