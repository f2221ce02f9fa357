import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.errors import NotFoundError, ValidationError
from app.models.notification import NotificationInDB
from app.models.recurring import RecurringCreate, RecurringInDB, RecurringUpdate
from app.routers.deps import get_connections, get_current_user_id, get_store, ok
from app.utils.connections import ConnectionRegistry
from app.utils.notifier import deliver
from app.utils.recurring import calculate_next_occurrence, process_due, upcoming

router = APIRouter()
logger = logging.getLogger(__name__)


def _load(store, user_id: str, recurring_id: str) -> RecurringInDB:
    record = store.get_recurring(user_id, recurring_id)
    if not record:
        raise NotFoundError("Recurring transaction not found")
    return RecurringInDB(**record)


def _public(recurring: RecurringInDB) -> dict:
    return recurring.model_dump(mode="json", exclude={"user_id"})


def _update(store, user_id: str, recurring_id: str, updates: dict) -> dict:
    updated = store.update_recurring(user_id, recurring_id, updates)
    if not updated:
        raise NotFoundError("Recurring transaction not found")
    return _public(RecurringInDB(**updated))


@router.get("/")
def list_recurring(
    is_active: Optional[bool] = None,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    templates = [RecurringInDB(**r) for r in store.list_recurring(user_id)]
    if is_active is not None:
        templates = [r for r in templates if r.is_active == is_active]
    templates.sort(key=lambda r: r.next_occurrence)
    return ok([_public(r) for r in templates])


@router.get("/upcoming")
def list_upcoming(
    days: int = Query(7, ge=1, le=365),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    return ok(upcoming(store, user_id, days))


@router.post("/process")
def process_recurring(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    connections: ConnectionRegistry = Depends(get_connections),
):
    """Materialize every due template now."""
    result = process_due(store, user_id)
    if result["processed"]:
        deliver(store, NotificationInDB(
            user_id=user_id,
            type="recurring_processed",
            priority="low",
            title="Recurring Transactions Processed",
            message=f"{len(result['processed'])} recurring transactions were added",
            action_url="/transactions",
            action_text="View Transactions",
        ), connections)
    return ok(result)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_recurring(
    recurring: RecurringCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    recurring_db = RecurringInDB(user_id=user_id, **recurring.model_dump())
    store.put_recurring(recurring_db.model_dump(mode="json"))
    return ok(_public(recurring_db), "Recurring transaction created successfully")


@router.get("/{recurring_id}")
def get_recurring(
    recurring_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    return ok(_public(_load(store, user_id, recurring_id)))


@router.put("/{recurring_id}")
def update_recurring(
    recurring_id: str,
    recurring_update: RecurringUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    updates = recurring_update.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")
    existing = _load(store, user_id, recurring_id)
    if recurring_update.end_date is not None and recurring_update.end_date < existing.start_date:
        raise ValidationError("End date must not be before start date")
    return ok(_update(store, user_id, recurring_id, updates), "Recurring transaction updated successfully")


@router.post("/{recurring_id}/toggle")
def toggle_recurring(
    recurring_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    recurring = _load(store, user_id, recurring_id)
    return ok(_update(store, user_id, recurring_id, {"is_active": not recurring.is_active}))


@router.post("/{recurring_id}/skip")
def skip_next_occurrence(
    recurring_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    recurring = _load(store, user_id, recurring_id)
    recurring.next_occurrence = calculate_next_occurrence(recurring.next_occurrence, recurring.frequency)
    updates = recurring.model_dump(mode="json", include={"next_occurrence"})
    return ok(_update(store, user_id, recurring_id, updates), "Next occurrence skipped")


@router.delete("/{recurring_id}")
def delete_recurring(
    recurring_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    if not store.delete_recurring(user_id, recurring_id):
        raise NotFoundError("Recurring transaction not found")
    return ok(message="Recurring transaction deleted successfully")
