import logging

from fastapi import APIRouter, Depends, status

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.budget import BudgetCreate, BudgetInDB, BudgetPublic, BudgetUpdate
from app.routers.deps import get_current_user_id, get_engine, get_store, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.date_ranges import parse_instant

router = APIRouter()
logger = logging.getLogger(__name__)


def _public(record: dict) -> dict:
    return BudgetPublic.from_budget(BudgetInDB(**record)).model_dump(mode="json")


def _get_or_404(store, user_id: str, budget_id: str) -> dict:
    record = store.get_budget(user_id, budget_id)
    if not record:
        raise NotFoundError("Budget not found")
    return record


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: BudgetCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    for existing in store.list_budgets(user_id, active_only=True):
        if existing["category"] == budget.category and existing["period"] == budget.period:
            raise ConflictError(f"An active {budget.period} budget for {budget.category} already exists")

    budget_db = BudgetInDB(user_id=user_id, **budget.model_dump())
    record = store.put_budget(budget_db.model_dump(mode="json"))
    engine.refresh_budget_spent(user_id, record)
    logger.info(f"Created budget {budget_db.budget_id} for user {user_id}")
    return ok(_public(record), "Budget created successfully")


@router.get("/")
def list_budgets(
    active_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    budgets = store.list_budgets(user_id, active_only=active_only)
    for record in budgets:
        engine.refresh_budget_spent(user_id, record)
    return ok([_public(record) for record in budgets])


@router.get("/alerts")
def budget_alerts(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """Active budgets whose utilisation reached their alert threshold."""
    alerts = []
    for record in store.list_budgets(user_id, active_only=True):
        engine.refresh_budget_spent(user_id, record)
        budget = BudgetInDB(**record)
        if budget.should_alert():
            alerts.append(BudgetPublic.from_budget(budget).model_dump(mode="json"))
    return ok(alerts)


@router.get("/{budget_id}")
def get_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    record = _get_or_404(store, user_id, budget_id)
    engine.refresh_budget_spent(user_id, record)
    return ok(_public(record))


@router.put("/{budget_id}")
def update_budget(
    budget_id: str,
    budget_update: BudgetUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    updates = budget_update.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")

    existing = _get_or_404(store, user_id, budget_id)
    start = parse_instant(updates.get("start_date", existing["start_date"]))
    end = parse_instant(updates.get("end_date", existing["end_date"]))
    if end <= start:
        raise ValidationError("End date must be after start date")

    updated = store.update_budget(user_id, budget_id, updates)
    if not updated:
        raise NotFoundError("Budget not found")
    engine.refresh_budget_spent(user_id, updated)
    return ok(_public(updated), "Budget updated successfully")


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    if not store.delete_budget(user_id, budget_id):
        raise NotFoundError("Budget not found")
    return ok(message="Budget deleted successfully")
