"""
Recurring transaction scheduling.

Month-based frequencies clamp to the last day of the target month, so a
template due on Jan 31 next falls on Feb 28 (or 29) and then stays on the
28th/29th: advancing from an already clamped date does not recover the
original day of month.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from app.models.recurring import RecurringInDB
from app.models.transaction import TransactionInDB
from app.utils.date_ranges import utcnow

logger = logging.getLogger(__name__)

FREQUENCY_STEPS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "biweekly": timedelta(days=14),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}


def calculate_next_occurrence(current: datetime, frequency: str) -> datetime:
    try:
        step = FREQUENCY_STEPS[frequency]
    except KeyError:
        raise ValueError(f"Unknown frequency: {frequency}")
    return current + step


def should_process(recurring: RecurringInDB, now: Optional[datetime] = None) -> bool:
    """
    True when the template is due. A template whose end date has passed is
    deactivated in place and reported as not due.
    """
    now = now or utcnow()
    if not recurring.is_active or not recurring.auto_process:
        return False
    if recurring.next_occurrence > now:
        return False
    if recurring.end_date is not None and recurring.end_date < now:
        recurring.is_active = False
        return False
    return True


def materialize(recurring: RecurringInDB, now: datetime) -> TransactionInDB:
    notes = "Auto-generated from recurring transaction"
    if recurring.notes.strip():
        notes = f"{notes}: {recurring.notes.strip()}"
    return TransactionInDB(
        user_id=recurring.user_id,
        type=recurring.type,
        amount=recurring.amount,
        category=recurring.category,
        date=now,
        description=recurring.description,
        payment_method=recurring.payment_method,
        notes=notes,
        recurring_id=recurring.recurring_id,
    )


def process_due(store, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Create one transaction per due template and advance its schedule.

    A failure on one template is recorded and the rest of the batch continues.
    """
    now = now or utcnow()
    processed: List[Dict[str, Any]] = []
    deactivated: List[str] = []
    errors: List[Dict[str, str]] = []

    for record in store.list_recurring(user_id):
        recurring = RecurringInDB(**record)
        was_active = recurring.is_active
        try:
            if not should_process(recurring, now):
                if was_active and not recurring.is_active:
                    store.update_recurring(user_id, recurring.recurring_id, {"is_active": False})
                    deactivated.append(recurring.recurring_id)
                continue

            transaction = materialize(recurring, now)
            store.put_transaction(transaction.model_dump(mode="json"))
            recurring.last_processed = now
            recurring.next_occurrence = calculate_next_occurrence(recurring.next_occurrence, recurring.frequency)
            store.update_recurring(
                user_id,
                recurring.recurring_id,
                recurring.model_dump(mode="json", include={"last_processed", "next_occurrence"}),
            )
            processed.append(transaction.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"Failed to process recurring {recurring.recurring_id} for user {user_id}: {str(e)}")
            errors.append({"recurring_id": recurring.recurring_id, "error": str(e)})

    if processed or deactivated:
        logger.info(f"Processed {len(processed)} recurring transactions for user {user_id} ({len(deactivated)} deactivated)")
    return {"processed": processed, "deactivated": deactivated, "errors": errors}


def upcoming(store, user_id: str, days: int = 7, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Active templates due within ``days``, soonest first."""
    horizon = (now or utcnow()) + timedelta(days=days)
    templates = [RecurringInDB(**r) for r in store.list_recurring(user_id)]
    due = [r for r in templates if r.is_active and r.next_occurrence <= horizon]
    due.sort(key=lambda r: r.next_occurrence)
    return [r.model_dump(mode="json", exclude={"user_id"}) for r in due]
