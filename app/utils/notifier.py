"""
Notification generation for budget alerts, goal deadlines and unusual spending.

A candidate is skipped when the user already received a notification with the
same type and related entity within the last 24 hours, or when the user has
turned that kind of notification off in their preferences. Saved notifications
are pushed to the user's live socket when a registry is supplied.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from app.models.budget import BudgetInDB
from app.models.goal import GoalInDB, days_remaining
from app.models.notification import NotificationInDB, RelatedEntity
from app.models.preferences import NotificationPreferences, PreferencesInDB
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.connections import ConnectionRegistry
from app.utils.date_ranges import end_of_day, parse_instant, start_of_day, utcnow

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(hours=24)
GOAL_REMINDER_DAYS = 7
UNUSUAL_SPENDING_LOOKBACK_DAYS = 30
UNUSUAL_SPENDING_FACTOR = 2


def budget_candidates(user_id: str, budgets: Iterable[BudgetInDB], now: datetime) -> List[NotificationInDB]:
    candidates = []
    for budget in budgets:
        related = RelatedEntity(entity_type="budget", entity_id=budget.budget_id)
        label = budget.name or budget.category
        if budget.is_exceeded():
            candidates.append(NotificationInDB(
                user_id=user_id,
                created_at=now,
                type="budget_exceeded",
                priority="high",
                title="Budget Exceeded",
                message=f"You've exceeded your {label} budget by ${budget.spent - budget.amount:.2f}",
                related_entity=related,
                action_url=f"/budgets/{budget.budget_id}",
                action_text="View Budget",
            ))
        elif budget.should_alert():
            candidates.append(NotificationInDB(
                user_id=user_id,
                created_at=now,
                type="budget_alert",
                priority="medium",
                title="Budget Alert",
                message=f"You've used {budget.percent_used:.0f}% of your {label} budget",
                related_entity=related,
                action_url=f"/budgets/{budget.budget_id}",
                action_text="View Budget",
            ))
    return candidates


def goal_candidates(user_id: str, goals: Iterable[GoalInDB], now: datetime) -> List[NotificationInDB]:
    candidates = []
    for goal in goals:
        if goal.status != "active":
            continue
        related = RelatedEntity(entity_type="goal", entity_id=goal.goal_id)
        days_left = days_remaining(goal.target_date, now)
        if days_left < 0:
            candidates.append(NotificationInDB(
                user_id=user_id,
                created_at=now,
                type="goal_reminder",
                priority="high",
                title="Goal Overdue",
                message=f'Your goal "{goal.name}" deadline has passed',
                related_entity=related,
                action_url=f"/goals/{goal.goal_id}",
                action_text="View Goal",
            ))
        elif days_left <= GOAL_REMINDER_DAYS:
            candidates.append(NotificationInDB(
                user_id=user_id,
                created_at=now,
                type="goal_reminder",
                priority="medium",
                title="Goal Deadline Approaching",
                message=f'Only {days_left} days left for "{goal.name}" ({goal.progress:.0f}% complete)',
                related_entity=related,
                action_url=f"/goals/{goal.goal_id}",
                action_text="View Goal",
            ))
    return candidates


def goal_achieved(user_id: str, goal: GoalInDB) -> NotificationInDB:
    return NotificationInDB(
        user_id=user_id,
        type="goal_achieved",
        priority="low",
        title="Goal Achieved!",
        message=f'Congratulations! You\'ve reached your goal: "{goal.name}"',
        related_entity=RelatedEntity(entity_type="goal", entity_id=goal.goal_id),
        action_url=f"/goals/{goal.goal_id}",
        action_text="View Goal",
    )


def unusual_spending_candidate(store, user_id: str, now: datetime) -> Optional[NotificationInDB]:
    """Yesterday's expenses compared with the trailing 30-day daily average."""
    lookback_start = now - timedelta(days=UNUSUAL_SPENDING_LOOKBACK_DAYS)
    recent = store.find_transactions(user_id, lookback_start, now, type="expense")
    if not recent:
        return None

    average_daily = sum(float(t["amount"]) for t in recent) / UNUSUAL_SPENDING_LOOKBACK_DAYS
    yesterday = start_of_day(now) - timedelta(days=1)
    yesterday_end = end_of_day(yesterday)
    yesterday_total = sum(
        float(t["amount"]) for t in recent if yesterday <= parse_instant(t["date"]) <= yesterday_end
    )
    if yesterday_total <= average_daily * UNUSUAL_SPENDING_FACTOR:
        return None

    return NotificationInDB(
        user_id=user_id,
        created_at=now,
        type="unusual_spending",
        priority="medium",
        title="Unusual Spending Detected",
        message=f"Yesterday's spending (${yesterday_total:.2f}) was significantly higher than your average",
        action_url="/analytics",
        action_text="View Analytics",
        metadata={"yesterday_total": round(yesterday_total, 2), "average_daily": round(average_daily, 2)},
    )


def _recent_keys(store, user_id: str, now: datetime) -> Set[Tuple[str, Optional[str]]]:
    recent = store.list_notifications(user_id, since=now - DEDUP_WINDOW)
    return {
        (n["type"], (n.get("related_entity") or {}).get("entity_id"))
        for n in recent
        if parse_instant(n["created_at"]) >= now - DEDUP_WINDOW
    }


def notification_preferences(store, user_id: str) -> NotificationPreferences:
    record = store.get_preferences(user_id)
    if not record:
        return NotificationPreferences()
    return PreferencesInDB(**record).notifications


def deliver(
    store,
    notification: NotificationInDB,
    connections: Optional[ConnectionRegistry] = None,
) -> Dict[str, Any]:
    """Persist a notification and push it to the user's socket if one is open."""
    record = notification.model_dump(mode="json")
    store.put_notification(record)
    if connections is not None:
        connections.send_to_user(notification.user_id, {"type": "notification", "data": record})
    return record


def generate_notifications(
    store,
    user_id: str,
    connections: Optional[ConnectionRegistry] = None,
    engine: Optional[AnalyticsEngine] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    now = now or utcnow()
    engine = engine or AnalyticsEngine(store)

    budgets = []
    for record in store.list_budgets(user_id, active_only=True):
        if parse_instant(record["end_date"]) < now:
            continue
        engine.refresh_budget_spent(user_id, record)
        budgets.append(BudgetInDB(**record))
    goals = [GoalInDB(**record) for record in store.list_goals(user_id)]

    candidates = budget_candidates(user_id, budgets, now) + goal_candidates(user_id, goals, now)
    unusual = unusual_spending_candidate(store, user_id, now)
    if unusual is not None:
        candidates.append(unusual)

    toggles = notification_preferences(store, user_id)
    candidates = [c for c in candidates if toggles.allows(c.type)]

    seen = _recent_keys(store, user_id, now)
    created = []
    for candidate in candidates:
        key = candidate.dedup_key[1:]
        if key in seen:
            continue
        seen.add(key)
        created.append(deliver(store, candidate, connections if toggles.realtime else None))

    if created:
        logger.info(f"Generated {len(created)} notifications for user {user_id}")
    return created
