"""
Dashboard Router
Home-screen aggregates composed from the analytics engine and the store
"""
from datetime import datetime
from typing import Tuple

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.routers.deps import get_current_user_id, get_date_range, get_engine, get_period_label, get_store, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.date_ranges import to_iso
from app.utils.recurring import upcoming

router = APIRouter()

DateRange = Tuple[datetime, datetime]
RECENT_TRANSACTIONS = 5


def budget_summary(performance: list) -> dict:
    total_budgeted = round(sum(row["budget_amount"] for row in performance), 2)
    total_spent = round(sum(row["spent"] for row in performance), 2)
    return {
        "total_budgets": len(performance),
        "total_budgeted": total_budgeted,
        "total_spent": total_spent,
        "total_remaining": round(total_budgeted - total_spent, 2),
        "at_risk": sum(
            1 for row in performance
            if row["status"] != "exceeded" and row["percent_used"] >= settings.BUDGET_AT_RISK_THRESHOLD
        ),
        "exceeded": sum(1 for row in performance if row["status"] == "exceeded"),
    }


@router.get("/")
def dashboard(
    date_range: DateRange = Depends(get_date_range),
    label: str = Depends(get_period_label),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    start, end = date_range
    analytics = engine.dashboard(user_id, start, end)

    transactions = store.find_transactions(user_id, start, end)
    transactions.sort(key=lambda t: t["transaction_id"], reverse=True)
    unread = sum(1 for n in store.list_notifications(user_id) if not n.get("is_read"))

    return ok({
        "period": {"start_date": to_iso(start), "end_date": to_iso(end), "label": label},
        "overview": analytics["overview"],
        "recent_transactions": [
            {k: v for k, v in t.items() if k != "user_id"} for t in transactions[:RECENT_TRANSACTIONS]
        ],
        "top_categories": analytics["category_breakdown"][:5],
        "budget_summary": budget_summary(analytics["budget_performance"]),
        "goal_summary": analytics["goal_progress"]["summary"],
        "upcoming_recurring": upcoming(store, user_id, days=7),
        "unread_notifications": unread,
        "daily_trend": analytics["daily_trend"],
        "insights": analytics["insights"][:3],
    })


@router.get("/summary-card")
def summary_card(
    date_range: DateRange = Depends(get_date_range),
    label: str = Depends(get_period_label),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    comparison = engine.period_comparison(user_id, *date_range)
    return ok({
        "label": label,
        **comparison["current"],
        "changes": comparison["changes"],
    })


@router.get("/spending-chart")
def spending_chart(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok({
        "daily": engine.daily_trend(user_id, *date_range),
        "categories": engine.category_breakdown(user_id, *date_range),
    })


@router.get("/income-vs-expenses")
def income_vs_expenses(
    months: int = Query(6, ge=1, le=24),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.monthly_comparison(user_id, months))
