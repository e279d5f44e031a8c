import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..exceptions import NotFound
from ..models import Notification, NotificationPreferences, PushToken, User
from ..services.notification_service import get_or_create_preferences
from ..shared.validators import validate_hh_mm
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


class NotificationResponse(BaseModel):
    id: str
    familyId: Optional[str] = None
    type: str
    title: str
    body: str
    priority: str
    data: Optional[dict] = None
    actionUrl: Optional[str] = None
    read: bool
    readAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id,
            familyId=n.family_id,
            type=n.type,
            title=n.title,
            body=n.body,
            priority=n.priority,
            data=n.data,
            actionUrl=n.action_url,
            read=n.read,
            readAt=n.read_at,
            createdAt=n.created_at,
        )


class MarkReadRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1, max_length=200)


class PreferencesPayload(BaseModel):
    swapRequestNotifications: Optional[bool] = None
    taskNotifications: Optional[bool] = None
    calendarNotifications: Optional[bool] = None
    documentNotifications: Optional[bool] = None
    familyNotifications: Optional[bool] = None
    emailNotifications: Optional[bool] = None
    pushNotifications: Optional[bool] = None
    quietHoursEnabled: Optional[bool] = None
    quietHoursStart: Optional[str] = None
    quietHoursEnd: Optional[str] = None

    @field_validator("quietHoursStart", "quietHoursEnd")
    @classmethod
    def check_time(cls, v):
        return validate_hh_mm(v)


# payload field -> column
PREFERENCE_FIELDS = {
    "swapRequestNotifications": "swap_request_notifications",
    "taskNotifications": "task_notifications",
    "calendarNotifications": "calendar_notifications",
    "documentNotifications": "document_notifications",
    "familyNotifications": "family_notifications",
    "emailNotifications": "email_notifications",
    "pushNotifications": "push_notifications",
    "quietHoursEnabled": "quiet_hours_enabled",
    "quietHoursStart": "quiet_hours_start",
    "quietHoursEnd": "quiet_hours_end",
}


def _preferences_dict(prefs: NotificationPreferences) -> dict:
    return {field: getattr(prefs, column) for field, column in PREFERENCE_FIELDS.items()}


class PushTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=512)
    platform: Optional[str] = Field(None, max_length=20)


class PushTokenRemoval(BaseModel):
    token: str = Field(..., min_length=1, max_length=512)


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest notifications first"""
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    rows = query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()
    return [NotificationResponse.from_model(n) for n in rows]


@router.get("/unread-count")
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    count = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.read.is_(False))
        .count()
    )
    return {"count": count}


@router.post("/read")
async def mark_notifications_read(
    data: MarkReadRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.id.in_(data.ids))
        .update({"read": True, "read_at": utcnow()}, synchronize_session=False)
    )
    db.commit()
    return {"updated": updated}


@router.post("/read-all")
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.read.is_(False))
        .update({"read": True, "read_at": utcnow()}, synchronize_session=False)
    )
    db.commit()
    logger.info(f"📭 Marked {updated} notifications read for user {current_user.id}")
    return {"updated": updated}


@router.delete("/all")
async def delete_all_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return {"deleted": deleted}


# ============================================================================
# PREFERENCES
# ============================================================================


@router.get("/preferences")
async def get_notification_preferences(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get user's notification preferences"""
    return _preferences_dict(get_or_create_preferences(db, current_user.id))


@router.put("/preferences")
async def update_notification_preferences(
    data: PreferencesPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update user's notification preferences; omitted fields keep their value"""
    prefs = get_or_create_preferences(db, current_user.id)
    for field in data.model_fields_set:
        value = getattr(data, field)
        column = PREFERENCE_FIELDS[field]
        if value is None and column not in ("quiet_hours_start", "quiet_hours_end"):
            continue
        setattr(prefs, column, value)
    db.commit()
    db.refresh(prefs)
    return _preferences_dict(prefs)


# ============================================================================
# PUSH TOKENS
# ============================================================================


@router.post("/push-tokens", status_code=201)
async def register_push_token(
    data: PushTokenRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Register a device token; a token seen under another account moves to this one"""
    existing = db.query(PushToken).filter(PushToken.token == data.token).first()
    if existing:
        existing.user_id = current_user.id
        existing.platform = data.platform or existing.platform
    else:
        db.add(PushToken(user_id=current_user.id, token=data.token, platform=data.platform))
    db.commit()
    logger.info(f"📱 Push token registered for user {current_user.id}")
    return {"message": "Push token registered"}


@router.delete("/push-tokens")
async def unregister_push_token(
    data: PushTokenRemoval,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = (
        db.query(PushToken)
        .filter(PushToken.user_id == current_user.id, PushToken.token == data.token)
        .delete(synchronize_session=False)
    )
    db.commit()
    return {"deleted": deleted}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == current_user.id)
        .first()
    )
    if not notification:
        raise NotFound("Notification not found", "notification-not-found")
    db.delete(notification)
    db.commit()
    return {"message": "Notification deleted"}
