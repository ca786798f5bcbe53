# screens/notifications/db.py
from __future__ import annotations

import logging
from typing import List, Optional

from core.rbac import active_admins
from core.records import Notification, Profile
from core.store import DataStore

log = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("info", "success", "warning", "error")


def my_notifications(store: DataStore, unread_only: bool = False, limit: Optional[int] = None) -> List[Notification]:
    """Notifications addressed to the store's user, newest first."""
    filters = {"user_id": store.user_id}
    if unread_only:
        filters["is_read"] = False
    rows = store.select("notifications", filters, order_by="created_at", desc=True, limit=limit).unwrap()
    return Notification.from_rows(rows)


def unread_count(store: DataStore) -> int:
    return store.count("notifications", {"user_id": store.user_id, "is_read": False}).unwrap()


def notify(store: DataStore, user_id: int, title: str, message: str, type: str = "info",
           related_table: Optional[str] = None, related_id: Optional[int] = None) -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")
    row = store.insert("notifications", {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": type,
        "related_table": related_table,
        "related_id": related_id,
    }).unwrap()
    return Notification.model_validate(row)


def mark_read(store: DataStore, pk: int) -> None:
    store.update("notifications", {"id": pk, "user_id": store.user_id}, {"is_read": True}).unwrap()


def mark_all_read(store: DataStore) -> int:
    rows = store.update("notifications", {"user_id": store.user_id, "is_read": False}, {"is_read": True}).unwrap()
    return len(rows)


def delete_notification(store: DataStore, pk: int) -> None:
    store.delete("notifications", {"id": pk, "user_id": store.user_id}).unwrap()


def contact_admins(store: DataStore, sender: Profile, subject: str, message: str) -> int:
    """Send one notification to every active admin. Returns how many were sent."""
    subject = (subject or "").strip()
    message = (message or "").strip()
    if not subject or not message:
        raise ValueError("Subject and message are required")
    sent = 0
    for admin in active_admins(store):
        notify(
            store, admin.id,
            title=f"Message from {sender.display_name}: {subject}",
            message=message,
            related_table="profiles",
            related_id=sender.id,
        )
        sent += 1
    log.info("Contact-admin message from %s sent to %d admins", sender.email, sent)
    return sent
