from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from app.core.config import settings
from app.models.budget import budget_status, percent_used
from app.models.goal import days_remaining, goal_progress
from app.utils.date_ranges import parse_instant, percentage_change

Record = Dict[str, Any]


@dataclass
class CategoryTotal:
    """Aggregated figures for one category within a date range."""

    category: str
    name: str
    total: float
    count: int
    average_amount: float
    percentage: float = 0.0
    icon: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Insight:
    type: str
    category: str
    message: str
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _amount(record: Record) -> float:
    return float(record.get("amount", 0))


def _day_key(value: Any) -> str:
    return parse_instant(value).strftime("%Y-%m-%d")


def _month_key(value: Any) -> str:
    return parse_instant(value).strftime("%Y-%m")


class FinanceAnalyzer:
    """
    Pure analytics over transaction, budget and goal records.

    Records are the plain dicts the store returns. Nothing here performs I/O,
    so the same instance is shared by routes, the dashboard and the scheduler.
    """

    def __init__(
        self,
        low_savings_rate: float = settings.LOW_SAVINGS_RATE,
        high_savings_rate: float = settings.HIGH_SAVINGS_RATE,
        top_category_share: float = settings.TOP_CATEGORY_SHARE,
    ) -> None:
        self._low_savings_rate = low_savings_rate
        self._high_savings_rate = high_savings_rate
        self._top_category_share = top_category_share

    # ---------- Totals ----------

    @staticmethod
    def total_by_type(transactions: Iterable[Record], type: str) -> float:
        return round(sum(_amount(t) for t in transactions if t.get("type") == type), 2)

    def spending_overview(self, transactions: List[Record]) -> Dict[str, Any]:
        income = self.total_by_type(transactions, "income")
        expenses = self.total_by_type(transactions, "expense")
        net_savings = round(income - expenses, 2)
        savings_rate = round(net_savings / income * 100, 2) if income > 0 else 0.0
        return {
            "total_income": income,
            "total_expenses": expenses,
            "net_savings": net_savings,
            "savings_rate": savings_rate,
            "transaction_count": len(transactions),
        }

    # ---------- Breakdowns and trends ----------

    def category_breakdown(
        self,
        transactions: List[Record],
        type: str = "expense",
        categories: Optional[Iterable[Record]] = None,
    ) -> List[Dict[str, Any]]:
        """Per-category totals for one transaction type, largest first."""
        lookup = {c["name"]: c for c in (categories or []) if c.get("type", type) == type}

        grouped: Dict[str, List[float]] = defaultdict(list)
        for t in transactions:
            if t.get("type") == type:
                grouped[t.get("category") or "Uncategorized"].append(_amount(t))

        rows = []
        for category, amounts in grouped.items():
            info = lookup.get(category, {})
            total = round(sum(amounts), 2)
            rows.append(
                CategoryTotal(
                    category=category,
                    name=info.get("name", category),
                    total=total,
                    count=len(amounts),
                    average_amount=round(total / len(amounts), 2),
                    icon=info.get("icon"),
                    color=info.get("color"),
                )
            )

        grand_total = sum(row.total for row in rows)
        for row in rows:
            row.percentage = round(row.total / grand_total * 100, 2) if grand_total > 0 else 0.0

        rows.sort(key=lambda row: row.total, reverse=True)
        return [row.to_dict() for row in rows]

    def daily_trend(self, transactions: List[Record]) -> List[Dict[str, Any]]:
        days: Dict[str, Dict[str, float]] = defaultdict(lambda: {"income": 0.0, "expenses": 0.0})
        for t in transactions:
            side = "income" if t.get("type") == "income" else "expenses"
            days[_day_key(t["date"])][side] += _amount(t)

        return [
            {
                "date": day,
                "income": round(totals["income"], 2),
                "expenses": round(totals["expenses"], 2),
                "net": round(totals["income"] - totals["expenses"], 2),
            }
            for day, totals in sorted(days.items())
        ]

    def monthly_comparison(
        self,
        transactions: List[Record],
        months_back: int,
        now: datetime,
    ) -> List[Dict[str, Any]]:
        """Income, expenses and savings for the trailing ``months_back`` calendar months."""
        first_month = now.replace(day=1) - relativedelta(months=months_back - 1)
        months = {
            (first_month + relativedelta(months=i)).strftime("%Y-%m"): {"income": 0.0, "expenses": 0.0}
            for i in range(months_back)
        }
        for t in transactions:
            key = _month_key(t["date"])
            if key not in months:
                continue
            side = "income" if t.get("type") == "income" else "expenses"
            months[key][side] += _amount(t)

        return [
            {
                "month": month,
                "income": round(totals["income"], 2),
                "expenses": round(totals["expenses"], 2),
                "savings": round(totals["income"] - totals["expenses"], 2),
            }
            for month, totals in sorted(months.items())
        ]

    # ---------- Budgets and goals ----------

    @staticmethod
    def budget_spent(budget: Record, transactions: Iterable[Record]) -> float:
        """Expenses in the budget's category that fall inside its own window."""
        start = parse_instant(budget["start_date"])
        end = parse_instant(budget["end_date"])
        return round(
            sum(
                _amount(t)
                for t in transactions
                if t.get("type") == "expense"
                and t.get("category") == budget["category"]
                and start <= parse_instant(t["date"]) <= end
            ),
            2,
        )

    @staticmethod
    def budget_performance_row(budget: Record, spent: float) -> Dict[str, Any]:
        amount = float(budget["amount"])
        used = percent_used(spent, amount)
        threshold = float(budget.get("alert_threshold", settings.BUDGET_WARNING_THRESHOLD))
        return {
            "budget_id": budget.get("budget_id"),
            "category": budget["category"],
            "budget_amount": amount,
            "spent": spent,
            "remaining": round(amount - spent, 2),
            "percent_used": used,
            "status": budget_status(spent, amount, threshold),
        }

    def goal_progress(self, goals: List[Record], now: datetime) -> Dict[str, Any]:
        tracked = [g for g in goals if g.get("status") != "cancelled"]
        total_target = round(sum(float(g["target_amount"]) for g in tracked), 2)
        total_saved = round(sum(float(g.get("current_amount", 0)) for g in tracked), 2)
        summary = {
            "total_goals": len(tracked),
            "active": sum(1 for g in tracked if g.get("status") == "active"),
            "completed": sum(1 for g in tracked if g.get("status") == "completed"),
            "total_target": total_target,
            "total_saved": total_saved,
            "overall_progress": round(total_saved / total_target * 100, 2) if total_target > 0 else 0.0,
        }
        return {
            "summary": summary,
            "goals": [
                {
                    "goal_id": g.get("goal_id"),
                    "name": g["name"],
                    "target_amount": float(g["target_amount"]),
                    "current_amount": float(g.get("current_amount", 0)),
                    "progress": goal_progress(float(g.get("current_amount", 0)), float(g["target_amount"])),
                    "status": g.get("status", "active"),
                    "days_remaining": days_remaining(parse_instant(g["target_date"]), now),
                }
                for g in tracked
            ],
        }

    # ---------- Derived observations ----------

    def financial_insights(
        self,
        overview: Dict[str, Any],
        breakdown: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Threshold rules; each fires on its own."""
        insights: List[Insight] = []
        savings_rate = overview["savings_rate"]

        if savings_rate < self._low_savings_rate:
            insights.append(Insight(
                type="warning",
                category="savings",
                message=(
                    f"Your savings rate is {savings_rate:.2f}%. Consider reducing expenses "
                    f"to save at least {self._low_savings_rate:g}% of your income."
                ),
                priority="high",
            ))
        if savings_rate >= self._high_savings_rate:
            insights.append(Insight(
                type="success",
                category="savings",
                message=f"Great job! You're saving {savings_rate:.2f}% of your income.",
                priority="low",
            ))

        if breakdown:
            top = breakdown[0]
            if top["percentage"] > self._top_category_share:
                insights.append(Insight(
                    type="info",
                    category="spending",
                    message=(
                        f"{top['name']} accounts for {top['percentage']:.2f}% of your expenses. "
                        "Consider reviewing this category."
                    ),
                    priority="medium",
                ))

        if overview["net_savings"] < 0:
            insights.append(Insight(
                type="alert",
                category="budget",
                message=(
                    "You're spending more than you earn. Your expenses exceed income by "
                    f"${abs(overview['net_savings']):.2f}."
                ),
                priority="high",
            ))

        return [insight.to_dict() for insight in insights]

    @staticmethod
    def compare_overviews(current: Dict[str, Any], previous: Dict[str, Any]) -> Dict[str, Any]:
        def change(field: str) -> Dict[str, float]:
            return {
                "amount": round(current[field] - previous[field], 2),
                "percentage": percentage_change(current[field], previous[field]),
            }

        return {
            "current": current,
            "previous": previous,
            "changes": {
                "income": change("total_income"),
                "expenses": change("total_expenses"),
                "savings": change("net_savings"),
            },
        }
