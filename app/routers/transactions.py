import logging
from datetime import datetime
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, status

from app.core.errors import NotFoundError, ValidationError
from app.models.transaction import (
    BulkDeleteRequest,
    TransactionCreate,
    TransactionInDB,
    TransactionPublic,
    TransactionType,
    TransactionUpdate,
)
from app.routers.deps import get_current_user_id, get_date_range, get_engine, get_period_label, get_store, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.date_ranges import resolve_date_range, to_iso

router = APIRouter()
logger = logging.getLogger(__name__)


def _public(record: dict) -> dict:
    return TransactionPublic(**record).model_dump(mode="json")


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    transaction_db = TransactionInDB(user_id=user_id, **transaction.model_dump())
    record = store.put_transaction(transaction_db.model_dump(mode="json"))
    return ok(_public(record), "Transaction created successfully")


@router.get("/")
def list_transactions(
    period: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    List transactions, newest first. Without a period or dates every
    transaction is considered.
    """
    start = end = None
    if period or start_date or end_date:
        start, end = resolve_date_range(period or "custom", start_date, end_date)

    transactions = store.find_transactions(user_id, start, end, type=type, category=category)
    transactions.sort(key=lambda t: t["transaction_id"], reverse=True)
    return ok({
        "transactions": [_public(t) for t in transactions[:limit]],
        "total": len(transactions),
    })


@router.post("/bulk-delete")
def bulk_delete_transactions(
    request: BulkDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    deleted = [tid for tid in request.transaction_ids if store.delete_transaction(user_id, tid)]
    logger.info(f"Bulk deleted {len(deleted)} of {len(request.transaction_ids)} transactions for user {user_id}")
    return ok({"deleted": deleted, "deleted_count": len(deleted)})


@router.get("/summary")
def transaction_summary(
    date_range: Tuple[datetime, datetime] = Depends(get_date_range),
    label: str = Depends(get_period_label),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """Totals and per-category breakdowns for a period (default: this month)."""
    start, end = date_range
    transactions = store.find_transactions(user_id, start, end)
    categories = engine.visible_categories(user_id)
    overview = engine.analyzer.spending_overview(transactions)
    return ok({
        "summary": {
            "total_income": overview["total_income"],
            "total_expenses": overview["total_expenses"],
            "balance": overview["net_savings"],
            "savings_rate": overview["savings_rate"],
            "transaction_count": overview["transaction_count"],
            "period": label,
            "start_date": to_iso(start),
            "end_date": to_iso(end),
        },
        "breakdown": {
            "expenses_by_category": engine.analyzer.category_breakdown(transactions, "expense", categories),
            "income_by_category": engine.analyzer.category_breakdown(transactions, "income", categories),
        },
    })


@router.get("/recent")
def recent_transactions(
    limit: int = Query(10, ge=1, le=50),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Most recently recorded transactions, whatever their date."""
    transactions = store.find_transactions(user_id)
    transactions.sort(key=lambda t: (t.get("created_at") or "", t["transaction_id"]), reverse=True)
    return ok([_public(t) for t in transactions[:limit]])


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    record = store.get_transaction(user_id, transaction_id)
    if not record:
        raise NotFoundError("Transaction not found")
    return ok(_public(record))


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    updates = transaction_update.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")

    existing = store.get_transaction(user_id, transaction_id)
    if not existing:
        raise NotFoundError("Transaction not found")

    if "date" in updates and updates["date"] != existing["date"]:
        # The sort key embeds the date, so a date change re-keys the item.
        moved = TransactionInDB(**{**existing, **updates, "transaction_id": ""})
        record = store.put_transaction(moved.model_dump(mode="json"))
        store.delete_transaction(user_id, transaction_id)
        return ok(_public(record), "Transaction updated successfully")

    updated = store.update_transaction(user_id, transaction_id, updates)
    if not updated:
        raise NotFoundError("Transaction not found")
    return ok(_public(updated), "Transaction updated successfully")


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    if not store.delete_transaction(user_id, transaction_id):
        raise NotFoundError("Transaction not found")
    return ok(message="Transaction deleted successfully")
