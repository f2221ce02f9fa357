"""
Analytics Router
Read-only views over a user's transactions, budgets and goals. Every ranged
endpoint accepts ``period`` or ``start_date``/``end_date``.
"""
from datetime import datetime
from typing import Literal, Tuple

from fastapi import APIRouter, Depends, Query

from app.routers.deps import get_current_user_id, get_date_range, get_engine, get_period_label, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.date_ranges import to_iso

router = APIRouter()

DateRange = Tuple[datetime, datetime]


def _range_info(date_range: DateRange, label: str) -> dict:
    start, end = date_range
    return {"start_date": to_iso(start), "end_date": to_iso(end), "label": label}


@router.get("/overview")
def spending_overview(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.spending_overview(user_id, *date_range))


@router.get("/category-breakdown")
def category_breakdown(
    type: Literal["income", "expense"] = "expense",
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.category_breakdown(user_id, *date_range, type=type))


@router.get("/top-categories")
def top_categories(
    limit: int = Query(5, ge=1, le=50),
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.top_categories(user_id, *date_range, limit=limit))


@router.get("/daily-trend")
def daily_trend(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.daily_trend(user_id, *date_range))


@router.get("/monthly-comparison")
def monthly_comparison(
    months: int = Query(6, ge=1, le=24),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.monthly_comparison(user_id, months))


@router.get("/budget-performance")
def budget_performance(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.budget_performance(user_id, *date_range))


@router.get("/goal-progress")
def goal_progress(
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.goal_progress(user_id))


@router.get("/insights")
def financial_insights(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.financial_insights(user_id, *date_range))


@router.get("/comparison")
def period_comparison(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.period_comparison(user_id, *date_range))


@router.get("/dashboard")
def analytics_dashboard(
    date_range: DateRange = Depends(get_date_range),
    label: str = Depends(get_period_label),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    data = engine.dashboard(user_id, *date_range)
    data["date_range"] = _range_info(date_range, label)
    return ok(data)


@router.get("/report")
def comprehensive_report(
    date_range: DateRange = Depends(get_date_range),
    label: str = Depends(get_period_label),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    data = engine.report(user_id, *date_range)
    data["date_range"] = _range_info(date_range, label)
    return ok(data)
