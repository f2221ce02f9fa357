"""
Notifications Router
Stored notifications for budget alerts, goal deadlines, unusual spending and recurring runs
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.errors import NotFoundError
from app.models.notification import NotificationPriority, NotificationType
from app.routers.deps import get_connections, get_current_user_id, get_engine, get_store, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.connections import ConnectionRegistry
from app.utils.date_ranges import to_iso, utcnow
from app.utils.notifier import generate_notifications

router = APIRouter()

PRIORITIES = ("urgent", "high", "medium", "low")


def _public(record: dict) -> dict:
    return {k: v for k, v in record.items() if k != "user_id"}


@router.get("/")
def list_notifications(
    is_read: Optional[bool] = None,
    type: Optional[NotificationType] = None,
    priority: Optional[NotificationPriority] = None,
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Newest first, with the unread count and a per-priority breakdown."""
    records = store.list_notifications(user_id)
    unread = sum(1 for n in records if not n.get("is_read"))
    if is_read is not None:
        records = [n for n in records if bool(n.get("is_read")) == is_read]
    if type:
        records = [n for n in records if n["type"] == type]
    if priority:
        records = [n for n in records if n["priority"] == priority]
    records.sort(key=lambda n: n["notification_id"], reverse=True)

    return ok({
        "notifications": [_public(n) for n in records[:limit]],
        "count": len(records),
        "unread_count": unread,
        "priority_counts": {p: sum(1 for n in records if n["priority"] == p) for p in PRIORITIES},
    })


@router.get("/unread-count")
def unread_count(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    records = store.list_notifications(user_id)
    return ok({"unread_count": sum(1 for n in records if not n.get("is_read"))})


@router.post("/generate")
def generate(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
    connections: ConnectionRegistry = Depends(get_connections),
):
    """Evaluate budgets, goals and recent spending and store any new notifications."""
    created = generate_notifications(store, user_id, connections, engine)
    return ok({"notifications": [_public(n) for n in created], "count": len(created)})


@router.put("/read-all")
def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    read_at = to_iso(utcnow())
    unread = [n for n in store.list_notifications(user_id) if not n.get("is_read")]
    for n in unread:
        store.update_notification(user_id, n["notification_id"], {"is_read": True, "read_at": read_at})
    return ok({"updated": len(unread)})


@router.delete("/clear-read")
def clear_read(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    read = [n for n in store.list_notifications(user_id) if n.get("is_read")]
    for n in read:
        store.delete_notification(user_id, n["notification_id"])
    return ok({"deleted": len(read)})


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    updated = store.update_notification(user_id, notification_id, {"is_read": True, "read_at": to_iso(utcnow())})
    if not updated:
        raise NotFoundError("Notification not found")
    return ok(_public(updated))


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    if not store.delete_notification(user_id, notification_id):
        raise NotFoundError("Notification not found")
    return ok(message="Notification deleted successfully")
