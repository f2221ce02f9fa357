from datetime import datetime, timedelta

from app.models.budget import BudgetInDB
from app.models.goal import GoalInDB
from app.models.preferences import PreferencesInDB
from app.models.transaction import TransactionInDB
from app.utils.notifier import generate_notifications, goal_candidates, unusual_spending_candidate

USER = "user-1"
now = datetime(2025, 3, 15, 9, 0)


class RecordingRegistry:
    def __init__(self):
        self.sent = []

    def send_to_user(self, user_id, data):
        self.sent.append((user_id, data))
        return True


def add_budget(store, spent_amount, amount=500, threshold=80):
    budget = BudgetInDB(
        user_id=USER,
        category="Food & Dining",
        amount=amount,
        start_date=datetime(2025, 3, 1),
        alert_threshold=threshold,
    )
    store.put_budget(budget.model_dump(mode="json"))
    if spent_amount:
        transaction = TransactionInDB(
            user_id=USER, type="expense", amount=spent_amount, category="Food & Dining", date=datetime(2025, 3, 2)
        )
        store.put_transaction(transaction.model_dump(mode="json"))
    return budget


def test_budget_alert_generated_and_pushed(store):
    budget = add_budget(store, 450)
    registry = RecordingRegistry()

    created = generate_notifications(store, USER, registry, now=now)

    assert [n["type"] for n in created] == ["budget_alert"]
    assert created[0]["related_entity"] == {"entity_type": "budget", "entity_id": budget.budget_id}
    assert created[0]["priority"] == "medium"
    assert len(store.list_notifications(USER)) == 1
    assert registry.sent == [(USER, {"type": "notification", "data": created[0]})]


def test_budget_exceeded_takes_precedence(store):
    add_budget(store, 600)
    created = generate_notifications(store, USER, now=now)
    assert [(n["type"], n["priority"]) for n in created] == [("budget_exceeded", "high")]
    assert "$100.00" in created[0]["message"]


def test_same_alert_not_repeated_within_24_hours(store):
    add_budget(store, 450)
    assert len(generate_notifications(store, USER, now=now)) == 1
    assert generate_notifications(store, USER, now=now + timedelta(hours=23)) == []


def test_alert_repeats_after_24_hours(store):
    add_budget(store, 450)
    generate_notifications(store, USER, now=now)
    again = generate_notifications(store, USER, now=now + timedelta(hours=25))
    assert [n["type"] for n in again] == ["budget_alert"]


def test_no_notifications_below_threshold(store):
    add_budget(store, 100)
    assert generate_notifications(store, USER, now=now) == []


def test_goal_deadline_reminders():
    soon = GoalInDB(user_id=USER, name="Trip", target_amount=1000, current_amount=200, target_date=now + timedelta(days=5))
    overdue = GoalInDB(user_id=USER, name="Bike", target_amount=500, current_amount=100, target_date=now - timedelta(days=2))
    later = GoalInDB(user_id=USER, name="House", target_amount=9000, target_date=now + timedelta(days=90))
    done = GoalInDB(user_id=USER, name="Phone", target_amount=300, current_amount=300, target_date=now + timedelta(days=3))

    candidates = goal_candidates(USER, [soon, overdue, later, done], now)

    assert [(c.related_entity.entity_id, c.priority) for c in candidates] == [
        (soon.goal_id, "medium"),
        (overdue.goal_id, "high"),
    ]
    assert "5 days left" in candidates[0].message


def test_unusual_spending_detected(store):
    for day in range(2, 30):
        t = TransactionInDB(user_id=USER, type="expense", amount=10, category="Food & Dining", date=now - timedelta(days=day))
        store.put_transaction(t.model_dump(mode="json"))
    spike = TransactionInDB(
        user_id=USER, type="expense", amount=200, category="Shopping", date=datetime(2025, 3, 14, 18, 0)
    )
    store.put_transaction(spike.model_dump(mode="json"))

    candidate = unusual_spending_candidate(store, USER, now)

    assert candidate is not None
    assert candidate.type == "unusual_spending"
    assert candidate.metadata["yesterday_total"] == 200.0


def test_normal_spending_is_not_unusual(store):
    for day in range(1, 30):
        t = TransactionInDB(user_id=USER, type="expense", amount=10, category="Food & Dining", date=now - timedelta(days=day))
        store.put_transaction(t.model_dump(mode="json"))
    assert unusual_spending_candidate(store, USER, now) is None
    assert unusual_spending_candidate(store, "nobody", now) is None


def test_goal_due_within_the_last_day_still_gets_a_reminder():
    just_passed = GoalInDB(user_id=USER, name="Gift", target_amount=200, target_date=now - timedelta(hours=12))

    candidates = goal_candidates(USER, [just_passed], now)

    assert [(c.title, c.priority) for c in candidates] == [("Goal Deadline Approaching", "medium")]


def save_notification_preferences(store, **toggles):
    preferences = PreferencesInDB(user_id=USER).merged({"notifications": toggles})
    store.put_preferences(preferences.model_dump(mode="json"))


def test_disabled_budget_alerts_are_not_generated(store):
    add_budget(store, 450)
    save_notification_preferences(store, budget_alerts=False)
    assert generate_notifications(store, USER, now=now) == []


def test_notifications_saved_but_not_pushed_without_realtime(store):
    add_budget(store, 450)
    save_notification_preferences(store, realtime=False)
    registry = RecordingRegistry()

    created = generate_notifications(store, USER, registry, now=now)

    assert [n["type"] for n in created] == ["budget_alert"]
    assert registry.sent == []
