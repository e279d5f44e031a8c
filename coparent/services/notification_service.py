"""
In-app notifications.

Creating a notification respects the recipient's category switches and quiet
hours, stores the row, then pushes it to the user's devices. Everything here is
best-effort: callers never see a failure.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from dateutil import tz
from sqlalchemy.orm import Session

from ..models import Notification, NotificationPreferences, UserSettings
from .push_service import send_push_to_user

logger = logging.getLogger(__name__)

# Notification type prefix -> preference switch
CATEGORY_PREFERENCES = {
    "swap_request": "swap_request_notifications",
    "custody": "calendar_notifications",
    "calendar": "calendar_notifications",
    "task": "task_notifications",
    "document": "document_notifications",
    "family": "family_notifications",
}


def get_or_create_preferences(db: Session, user_id: str) -> NotificationPreferences:
    prefs = db.query(NotificationPreferences).filter(NotificationPreferences.user_id == user_id).first()
    if not prefs:
        prefs = NotificationPreferences(user_id=user_id)
        db.add(prefs)
        db.commit()
        db.refresh(prefs)
    return prefs


def category_enabled(notification_type: str, prefs: Optional[NotificationPreferences]) -> bool:
    if prefs is None:
        return True
    for prefix, attr in CATEGORY_PREFERENCES.items():
        if notification_type.startswith(prefix):
            return bool(getattr(prefs, attr))
    return True


def _minutes(hh_mm: str) -> int:
    hours, minutes = hh_mm.split(":")
    return int(hours) * 60 + int(minutes)


def in_quiet_hours(prefs: Optional[NotificationPreferences], local_now: datetime) -> bool:
    """Quiet window may wrap past midnight (e.g. 22:00-07:00)"""
    if not prefs or not prefs.quiet_hours_enabled:
        return False
    if not prefs.quiet_hours_start or not prefs.quiet_hours_end:
        return False

    current = local_now.hour * 60 + local_now.minute
    start = _minutes(prefs.quiet_hours_start)
    end = _minutes(prefs.quiet_hours_end)
    if start <= end:
        return start <= current < end
    return current >= start or current < end


def user_local_now(db: Session, user_id: str) -> datetime:
    settings = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    zone = tz.gettz(settings.timezone) if settings and settings.timezone else None
    return datetime.now(zone or timezone.utc)


def create_notification(
    db: Session,
    user_id: str,
    notification_type: str,
    title: str,
    body: str,
    family_id: Optional[str] = None,
    priority: str = "normal",
    data: Optional[dict] = None,
    action_url: Optional[str] = None,
    send_push: bool = True,
) -> Optional[Notification]:
    """Store a notification for one user and push it. Returns None when suppressed."""
    try:
        prefs = db.query(NotificationPreferences).filter(
            NotificationPreferences.user_id == user_id
        ).first()

        if not category_enabled(notification_type, prefs):
            logger.info(f"🔕 Skipping {notification_type} for user {user_id} (disabled in preferences)")
            return None
        if in_quiet_hours(prefs, user_local_now(db, user_id)):
            logger.info(f"🔕 Skipping {notification_type} for user {user_id} (quiet hours)")
            return None

        notification = Notification(
            user_id=user_id,
            family_id=family_id,
            type=notification_type,
            title=title[:200],
            body=body[:500],
            priority=priority,
            data=data,
            action_url=action_url,
            read=False,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to create notification for user {user_id}: {str(e)}")
        return None

    if send_push and (prefs is None or prefs.push_notifications):
        payload = {"notificationId": notification.id, "type": notification_type}
        if family_id:
            payload["familyId"] = family_id
        if action_url:
            payload["actionUrl"] = action_url
        payload.update(data or {})
        send_push_to_user(db, user_id, title, body, payload)

    return notification


def notify_users(
    db: Session,
    user_ids: list[str],
    notification_type: str,
    title: str,
    body: str,
    family_id: Optional[str] = None,
    data: Optional[dict] = None,
    action_url: Optional[str] = None,
) -> int:
    """Create the same notification for several users. Returns how many were stored."""
    created = 0
    for user_id in user_ids:
        if create_notification(
            db,
            user_id,
            notification_type,
            title,
            body,
            family_id=family_id,
            data=data,
            action_url=action_url,
        ):
            created += 1
    return created
