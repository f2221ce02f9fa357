from datetime import datetime

import pytest
from pydantic import ValidationError

from app.models.budget import BudgetCreate, BudgetInDB, BudgetPublic, default_end_date
from app.models.category import (
    DEFAULT_OWNER_ID,
    DefaultCategory,
    UserCategory,
    category_from_record,
    category_to_record,
    default_categories,
)
from app.models.goal import GoalInDB, GoalPublic
from app.models.notification import NotificationInDB, RelatedEntity
from app.models.recurring import RecurringCreate
from app.models.transaction import TransactionInDB


def make_budget(**fields):
    values = {
        "user_id": "user-1",
        "category": "Food & Dining",
        "amount": 500,
        "start_date": datetime(2025, 3, 1),
    }
    values.update(fields)
    return BudgetInDB(**values)


def test_budget_at_ninety_percent_is_a_warning():
    budget = make_budget(spent=450, alert_threshold=80)
    assert budget.percent_used == 90.0
    assert budget.status == "warning"
    assert budget.should_alert() is True
    assert budget.is_exceeded() is False
    assert budget.remaining == 50.0


def test_budget_exceeded():
    budget = make_budget(spent=500)
    assert budget.is_exceeded() is True
    assert budget.status == "exceeded"


def test_budget_below_threshold_is_good():
    budget = make_budget(spent=100)
    assert budget.status == "good"
    assert budget.should_alert() is False


def test_budget_custom_threshold_changes_status():
    budget = make_budget(spent=300, alert_threshold=50)
    assert budget.status == "warning"
    assert budget.should_alert() is True


def test_budget_status_follows_unrounded_ratio():
    nearly_full = make_budget(amount=400, spent=399.99)
    assert nearly_full.percent_used == 100.0
    assert nearly_full.is_exceeded() is False
    assert nearly_full.status == "warning"

    under_threshold = make_budget(amount=400, spent=319.99)
    assert under_threshold.should_alert() is False
    assert under_threshold.status == "good"


def test_budget_end_date_derived_from_period():
    budget = make_budget()
    assert budget.end_date == datetime(2025, 3, 31, 23, 59, 59, 999000)
    weekly = make_budget(period="weekly")
    assert weekly.end_date == datetime(2025, 3, 7, 23, 59, 59, 999000)
    assert default_end_date(datetime(2024, 1, 1), "yearly") == datetime(2024, 12, 31, 23, 59, 59, 999000)


def test_budget_rejects_end_before_start():
    with pytest.raises(ValidationError):
        BudgetCreate(category="Food", amount=100, start_date=datetime(2025, 3, 10), end_date=datetime(2025, 3, 1))


def test_budget_rejects_non_positive_amount():
    with pytest.raises(ValidationError):
        BudgetCreate(category="Food", amount=0)


def test_budget_expiry():
    budget = make_budget()
    assert budget.is_expired(datetime(2025, 4, 1)) is True
    assert budget.is_expired(datetime(2025, 3, 15)) is False


def test_budget_public_carries_derived_fields():
    public = BudgetPublic.from_budget(make_budget(spent=125)).model_dump(mode="json")
    assert public["remaining"] == 375.0
    assert public["percent_used"] == 25.0
    assert public["status"] == "good"
    assert public["start_date"] == "2025-03-01T00:00:00.000"
    assert "user_id" not in public


def make_goal(**fields):
    values = {
        "user_id": "user-1",
        "name": "Emergency fund",
        "target_amount": 1000,
        "target_date": datetime(2025, 12, 31),
    }
    values.update(fields)
    return GoalInDB(**values)


def test_contribution_reaching_target_completes_goal():
    goal = make_goal(current_amount=900)
    assert goal.status == "active"
    goal.contribute(100)
    assert goal.current_amount == 1000
    assert goal.status == "completed"
    assert goal.progress == 100.0


def test_goal_progress_is_capped_at_100():
    goal = make_goal(current_amount=1500)
    assert goal.progress == 100.0
    assert goal.status == "completed"


def test_completed_goal_reopens_when_target_raised():
    goal = make_goal(current_amount=1000)
    goal.target_amount = 2000
    goal.refresh_progress()
    assert goal.status == "active"
    assert goal.progress == 50.0


def test_cancelled_goal_stays_cancelled():
    goal = make_goal(current_amount=1000, status="cancelled")
    assert goal.status == "cancelled"


def test_goal_public_days_remaining():
    public = GoalPublic.from_goal(make_goal(), now=datetime(2025, 12, 21))
    assert public.days_remaining == 10


def test_transaction_id_is_prefixed_with_date():
    transaction = TransactionInDB(
        user_id="user-1", type="expense", amount=12.5, category="Food", date=datetime(2025, 3, 2, 8, 30)
    )
    assert transaction.transaction_id.startswith("2025-03-02T08:30:00.000#")


def test_transaction_date_normalized_to_naive_utc():
    transaction = TransactionInDB(
        user_id="user-1", type="income", amount=1, category="Salary", date="2025-03-02T10:00:00+02:00"
    )
    assert transaction.date == datetime(2025, 3, 2, 8, 0)


def test_recurring_next_occurrence_defaults_to_start():
    recurring = RecurringCreate(
        description="Rent", amount=1200, type="expense", category="Housing",
        frequency="monthly", start_date=datetime(2025, 1, 31),
    )
    assert recurring.next_occurrence == datetime(2025, 1, 31)


def test_recurring_rejects_end_before_start():
    with pytest.raises(ValidationError):
        RecurringCreate(
            description="Rent", amount=1200, type="expense", category="Housing",
            frequency="monthly", start_date=datetime(2025, 2, 1), end_date=datetime(2025, 1, 1),
        )


def test_default_category_cannot_be_modified():
    category = DefaultCategory(name="Salary", type="income")
    assert category.can_modify("user-1") is False
    assert category.owner_id == DEFAULT_OWNER_ID


def test_user_category_modifiable_only_by_owner():
    category = UserCategory(user_id="user-1", name="Pets", type="expense")
    assert category.can_modify("user-1") is True
    assert category.can_modify("user-2") is False


def test_category_records_round_trip_to_the_right_variant():
    record = category_to_record(UserCategory(user_id="user-1", name="Pets", type="expense"))
    assert record["owner_id"] == "user-1"
    assert isinstance(category_from_record(record), UserCategory)
    default_record = category_to_record(default_categories()[0])
    assert default_record["owner_id"] == DEFAULT_OWNER_ID
    assert isinstance(category_from_record(default_record), DefaultCategory)


def test_default_categories_have_stable_ids():
    categories = default_categories()
    assert len(categories) == 20
    assert categories[0].category_id == "default-income-0"
    assert len({c.category_id for c in categories}) == len(categories)


def test_notification_dedup_key():
    notification = NotificationInDB(
        user_id="user-1",
        type="budget_alert",
        title="Budget Alert",
        message="80% used",
        related_entity=RelatedEntity(entity_type="budget", entity_id="b1"),
    )
    assert notification.dedup_key == ("user-1", "budget_alert", "b1")
    assert notification.notification_id.split("#")[0] == notification.model_dump(mode="json")["created_at"]
