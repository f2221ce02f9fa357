"""
Analytics engine: store reads + FinanceAnalyzer computations.

The store is any object exposing the ``app.db.dynamo`` function set (the
module itself in production, an in-memory fake in tests). Store failures
propagate as ``DataAccessError``; nothing is retried here.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from app.models.category import DEFAULT_OWNER_ID
from app.utils.analyzer import FinanceAnalyzer
from app.utils.date_ranges import parse_instant, previous_period, to_iso, utcnow

logger = logging.getLogger(__name__)

FAN_OUT_WORKERS = 6


class AnalyticsEngine:
    def __init__(self, store, analyzer: Optional[FinanceAnalyzer] = None) -> None:
        self._store = store
        self._analyzer = analyzer or FinanceAnalyzer()

    @property
    def analyzer(self) -> FinanceAnalyzer:
        return self._analyzer

    # ---------- Single operations ----------

    def spending_overview(self, user_id: str, start: datetime, end: datetime) -> Dict[str, Any]:
        transactions = self._store.find_transactions(user_id, start, end)
        return self._analyzer.spending_overview(transactions)

    def category_breakdown(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        type: str = "expense",
    ) -> List[Dict[str, Any]]:
        transactions = self._store.find_transactions(user_id, start, end, type=type)
        return self._analyzer.category_breakdown(transactions, type, self.visible_categories(user_id))

    def top_categories(self, user_id: str, start: datetime, end: datetime, limit: int = 5) -> List[Dict[str, Any]]:
        return self.category_breakdown(user_id, start, end, "expense")[:limit]

    def daily_trend(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        transactions = self._store.find_transactions(user_id, start, end)
        return self._analyzer.daily_trend(transactions)

    def monthly_comparison(
        self,
        user_id: str,
        months_back: int = 6,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        now = now or utcnow()
        first = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start = first - relativedelta(months=months_back - 1)
        transactions = self._store.find_transactions(user_id, start, now)
        return self._analyzer.monthly_comparison(transactions, months_back, now)

    def budget_performance(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """
        Per-budget utilisation for active budgets overlapping [start, end].

        Each budget's ``spent`` is recomputed over its own window and written
        back when it changed. Concurrent refreshes compute the same value for
        the same window, so last write wins harmlessly.
        """
        performance = []
        for budget in self._store.list_budgets(user_id, active_only=True):
            if parse_instant(budget["start_date"]) > end or parse_instant(budget["end_date"]) < start:
                continue
            spent = self.refresh_budget_spent(user_id, budget)
            performance.append(self._analyzer.budget_performance_row(budget, spent))
        return performance

    def refresh_budget_spent(self, user_id: str, budget: Dict[str, Any]) -> float:
        transactions = self._store.find_transactions(
            user_id,
            parse_instant(budget["start_date"]),
            parse_instant(budget["end_date"]),
            type="expense",
            category=budget["category"],
        )
        spent = self._analyzer.budget_spent(budget, transactions)
        if float(budget.get("spent", 0)) != spent:
            self._store.update_budget(user_id, budget["budget_id"], {"spent": spent})
            logger.debug(f"Refreshed spent for budget {budget['budget_id']}: {budget.get('spent', 0)} -> {spent}")
            budget["spent"] = spent
        return spent

    def goal_progress(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        goals = self._store.list_goals(user_id)
        return self._analyzer.goal_progress(goals, now or utcnow())

    def financial_insights(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        transactions = self._store.find_transactions(user_id, start, end)
        overview = self._analyzer.spending_overview(transactions)
        breakdown = self._analyzer.category_breakdown(transactions, "expense", self.visible_categories(user_id))
        return self._analyzer.financial_insights(overview, breakdown)

    def period_comparison(self, user_id: str, start: datetime, end: datetime) -> Dict[str, Any]:
        prev_start, prev_end = previous_period(start, end)
        overviews = self._fan_out({
            "current": lambda: self.spending_overview(user_id, start, end),
            "previous": lambda: self.spending_overview(user_id, prev_start, prev_end),
        })
        comparison = self._analyzer.compare_overviews(overviews["current"], overviews["previous"])
        comparison["previous_range"] = {"start_date": to_iso(prev_start), "end_date": to_iso(prev_end)}
        return comparison

    def visible_categories(self, user_id: str) -> List[Dict[str, Any]]:
        return self._store.list_categories(user_id) + self._store.list_categories(DEFAULT_OWNER_ID)

    # ---------- Composite views ----------

    def dashboard(self, user_id: str, start: datetime, end: datetime) -> Dict[str, Any]:
        return self._fan_out({
            "overview": lambda: self.spending_overview(user_id, start, end),
            "category_breakdown": lambda: self.category_breakdown(user_id, start, end),
            "daily_trend": lambda: self.daily_trend(user_id, start, end),
            "budget_performance": lambda: self.budget_performance(user_id, start, end),
            "goal_progress": lambda: self.goal_progress(user_id),
            "insights": lambda: self.financial_insights(user_id, start, end),
        })

    def report(self, user_id: str, start: datetime, end: datetime) -> Dict[str, Any]:
        data = self._fan_out({
            "overview": lambda: self.spending_overview(user_id, start, end),
            "comparison": lambda: self.period_comparison(user_id, start, end),
            "category_breakdown": lambda: self.category_breakdown(user_id, start, end),
            "daily_trend": lambda: self.daily_trend(user_id, start, end),
            "monthly_data": lambda: self.monthly_comparison(user_id, 6),
            "budget_performance": lambda: self.budget_performance(user_id, start, end),
            "goal_progress": lambda: self.goal_progress(user_id),
            "insights": lambda: self.financial_insights(user_id, start, end),
        })
        data["top_categories"] = data["category_breakdown"][:10]
        data["generated_at"] = to_iso(utcnow())
        return data

    @staticmethod
    def _fan_out(calls: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
        """Run independent reads concurrently; the first failure propagates."""
        with ThreadPoolExecutor(max_workers=min(FAN_OUT_WORKERS, len(calls))) as pool:
            futures = {name: pool.submit(call) for name, call in calls.items()}
            return {name: future.result() for name, future in futures.items()}
