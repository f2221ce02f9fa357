from datetime import datetime

import pytest

from app.models.recurring import RecurringInDB
from app.utils.recurring import calculate_next_occurrence, materialize, process_due, should_process, upcoming

USER = "user-1"
now = datetime(2025, 3, 15, 9, 0)


def make_recurring(**fields):
    values = {
        "user_id": USER,
        "description": "Rent",
        "amount": 1200,
        "type": "expense",
        "category": "Housing",
        "frequency": "monthly",
        "start_date": datetime(2025, 3, 1),
    }
    values.update(fields)
    return RecurringInDB(**values)


@pytest.mark.parametrize(
    "frequency,expected",
    [
        ("daily", datetime(2025, 3, 2)),
        ("weekly", datetime(2025, 3, 8)),
        ("biweekly", datetime(2025, 3, 15)),
        ("monthly", datetime(2025, 4, 1)),
        ("quarterly", datetime(2025, 6, 1)),
        ("yearly", datetime(2026, 3, 1)),
    ],
)
def test_next_occurrence(frequency, expected):
    assert calculate_next_occurrence(datetime(2025, 3, 1), frequency) == expected


def test_monthly_clamps_to_end_of_month_and_stays_clamped():
    feb = calculate_next_occurrence(datetime(2025, 1, 31), "monthly")
    assert feb == datetime(2025, 2, 28)
    assert calculate_next_occurrence(feb, "monthly") == datetime(2025, 3, 28)
    assert calculate_next_occurrence(datetime(2024, 1, 31), "monthly") == datetime(2024, 2, 29)


def test_unknown_frequency():
    with pytest.raises(ValueError):
        calculate_next_occurrence(datetime(2025, 3, 1), "hourly")


def test_should_process_when_due():
    assert should_process(make_recurring(), now) is True


def test_should_not_process_future_inactive_or_manual():
    assert should_process(make_recurring(start_date=datetime(2025, 4, 1)), now) is False
    assert should_process(make_recurring(is_active=False), now) is False
    assert should_process(make_recurring(auto_process=False), now) is False


def test_expired_template_is_deactivated_by_the_check():
    recurring = make_recurring(end_date=datetime(2025, 3, 10))
    assert should_process(recurring, now) is False
    assert recurring.is_active is False


def test_process_due_materializes_and_advances(store):
    recurring = make_recurring()
    store.put_recurring(recurring.model_dump(mode="json"))

    result = process_due(store, USER, now)

    assert len(result["processed"]) == 1
    assert result["errors"] == []
    transaction = result["processed"][0]
    assert transaction["recurring_id"] == recurring.recurring_id
    assert transaction["notes"].startswith("Auto-generated from recurring transaction")
    assert len(store.find_transactions(USER)) == 1

    stored = store.get_recurring(USER, recurring.recurring_id)
    assert stored["next_occurrence"] == "2025-04-01T00:00:00.000"
    assert stored["last_processed"] == "2025-03-15T09:00:00.000"


def test_process_due_is_idempotent_until_next_occurrence(store):
    store.put_recurring(make_recurring().model_dump(mode="json"))
    process_due(store, USER, now)
    second = process_due(store, USER, now)
    assert second["processed"] == []
    assert len(store.find_transactions(USER)) == 1


def test_process_due_persists_deactivation(store):
    recurring = make_recurring(end_date=datetime(2025, 3, 10))
    store.put_recurring(recurring.model_dump(mode="json"))
    result = process_due(store, USER, now)
    assert result["deactivated"] == [recurring.recurring_id]
    assert store.get_recurring(USER, recurring.recurring_id)["is_active"] is False


def test_process_due_collects_errors_and_continues(store):
    broken = make_recurring(description="Broken")
    healthy = make_recurring(description="Gym", amount=40)
    store.put_recurring(broken.model_dump(mode="json"))
    store.put_recurring(healthy.model_dump(mode="json"))

    original_put = store.put_transaction

    def flaky_put(item):
        if item["description"] == "Broken":
            raise RuntimeError("write rejected")
        return original_put(item)

    store.put_transaction = flaky_put
    result = process_due(store, USER, now)

    assert [t["description"] for t in result["processed"]] == ["Gym"]
    assert result["errors"] == [{"recurring_id": broken.recurring_id, "error": "write rejected"}]


def test_upcoming_within_window(store):
    store.put_recurring(make_recurring(start_date=datetime(2025, 3, 18)).model_dump(mode="json"))
    store.put_recurring(make_recurring(start_date=datetime(2025, 3, 30)).model_dump(mode="json"))
    store.put_recurring(make_recurring(start_date=datetime(2025, 3, 16), is_active=False).model_dump(mode="json"))
    due = upcoming(store, USER, days=7, now=now)
    assert [r["next_occurrence"] for r in due] == ["2025-03-18T00:00:00.000"]


def test_materialized_notes():
    assert materialize(make_recurring(), now).notes == "Auto-generated from recurring transaction"
    assert (
        materialize(make_recurring(notes="Landlord"), now).notes
        == "Auto-generated from recurring transaction: Landlord"
    )
