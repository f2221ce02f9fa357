from datetime import timedelta

from app.models.budget import BudgetInDB
from app.models.recurring import RecurringInDB
from app.models.transaction import TransactionInDB
from app.utils import scheduler
from app.utils.date_ranges import start_of_day, utcnow


def add_user(store, user_id):
    store.put_user({"user_id": user_id, "email": f"{user_id}@example.com", "password_hash": "x"})


def test_sweep_processes_recurring_and_notifies(store):
    add_user(store, "user-1")
    add_user(store, "user-2")
    recurring = RecurringInDB(
        user_id="user-1", description="Rent", amount=1200, type="expense", category="Housing",
        frequency="monthly", start_date=utcnow() - timedelta(days=1),
    )
    store.put_recurring(recurring.model_dump(mode="json"))
    budget = BudgetInDB(user_id="user-2", category="Shopping", amount=100, start_date=start_of_day(utcnow()))
    store.put_budget(budget.model_dump(mode="json"))
    spend = TransactionInDB(user_id="user-2", type="expense", amount=150, category="Shopping", date=utcnow())
    store.put_transaction(spend.model_dump(mode="json"))

    summary = scheduler.run_sweep(store)

    assert summary["users"] == 2
    assert summary["processed"] == 1
    assert summary["failed_users"] == []
    assert [n["type"] for n in store.list_notifications("user-2")] == ["budget_exceeded"]


def test_sweep_continues_after_a_user_fails(store, monkeypatch):
    add_user(store, "user-1")
    add_user(store, "user-2")
    seen = []

    def fake_process_due(store, user_id, now):
        seen.append(user_id)
        if user_id == "user-1":
            raise RuntimeError("boom")
        return {"processed": [], "deactivated": [], "errors": []}

    monkeypatch.setattr(scheduler, "process_due", fake_process_due)
    summary = scheduler.run_sweep(store)

    assert seen == ["user-1", "user-2"]
    assert summary["failed_users"] == ["user-1"]


def test_scheduler_lifecycle(store):
    assert scheduler.get_scheduler_status() == {"running": False, "jobs": []}
    scheduler.start_scheduler(store)
    try:
        status = scheduler.get_scheduler_status()
        assert status["running"] is True
        assert [job["id"] for job in status["jobs"]] == [scheduler.SWEEP_JOB_ID]
        assert status["jobs"][0]["next_run"] is not None
    finally:
        scheduler.stop_scheduler()
    assert scheduler.get_scheduler_status()["running"] is False
