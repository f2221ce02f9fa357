"""
Dependencies shared by every router: the current user, the store, the
analytics engine, the connection registry and the analytics date range.
"""
from datetime import datetime
from types import ModuleType
from typing import Any, Optional, Tuple

from fastapi import Depends, Header, HTTPException, Query, Request, status

from app.core.security import decode_access_token
from app.db import dynamo
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.connections import ConnectionRegistry
from app.utils.date_ranges import date_label, resolve_date_range


def user_id_from_token(token: str) -> str:
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Extract user_id from JWT token"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")

    token = authorization.replace("Bearer ", "")
    return user_id_from_token(token)


def get_store() -> ModuleType:
    """The data store; overridden with an in-memory fake in tests."""
    return dynamo


def get_engine(store=Depends(get_store)) -> AnalyticsEngine:
    return AnalyticsEngine(store)


def get_connections(request: Request) -> ConnectionRegistry:
    return request.app.state.connections


def get_date_range(
    period: Optional[str] = Query(None, description="today, yesterday, week, last-week, month, last-month, quarter, year, last-year, custom"),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
) -> Tuple[datetime, datetime]:
    if period is None:
        period = "custom" if (start_date or end_date) else "month"
    return resolve_date_range(period, start_date, end_date)


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def get_period_label(
    period: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
) -> str:
    if period is None:
        period = "custom" if (start_date or end_date) else "month"
    return date_label(period)
