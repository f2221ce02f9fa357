"""
Health Check Router
Liveness and data store connectivity
"""
import logging

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.errors import DataAccessError
from app.models.category import DEFAULT_OWNER_ID
from app.routers.deps import get_connections, get_store
from app.utils.connections import ConnectionRegistry
from app.utils.date_ranges import to_iso, utcnow
from app.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": to_iso(utcnow()),
    }


@router.get("/status")
def services_status(
    store=Depends(get_store),
    connections: ConnectionRegistry = Depends(get_connections),
):
    """Check DynamoDB reachability and report scheduler and WebSocket state."""
    dynamodb_status = {"connected": False, "region": settings.DYNAMO_REGION, "error": None}
    try:
        store.list_categories(DEFAULT_OWNER_ID)
        dynamodb_status["connected"] = True
    except DataAccessError as e:
        dynamodb_status["error"] = e.message
        logger.error(f"DynamoDB check failed: {e.message}")

    return {
        "timestamp": to_iso(utcnow()),
        "overall_status": "healthy" if dynamodb_status["connected"] else "degraded",
        "services": {
            "dynamodb": dynamodb_status,
            "scheduler": get_scheduler_status(),
            "websocket": {"connections": len(connections)},
        },
    }
