import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..exceptions import ValidationFailed
from ..membership import get_family_member
from ..models import FamilyMember, FamilySettings, User, UserSettings
from ..realtime import emit_to_family
from ..shared.validators import validate_hh_mm, validate_percentage_split

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["Settings"])


class UserSettingsPayload(BaseModel):
    language: Optional[str] = Field(None, min_length=2, max_length=5)
    timezone: Optional[str] = Field(None, max_length=64)
    dateFormat: Optional[str] = Field(None, max_length=20)
    timeFormat: Optional[Literal["12h", "24h"]] = None
    weekStart: Optional[Literal["sunday", "monday"]] = None
    theme: Optional[Literal["light", "dark", "auto"]] = None


USER_FIELDS = {
    "language": "language",
    "timezone": "timezone",
    "dateFormat": "date_format",
    "timeFormat": "time_format",
    "weekStart": "week_start",
    "theme": "theme",
}


class FamilySettingsPayload(BaseModel):
    defaultCurrency: Optional[str] = Field(None, min_length=3, max_length=3)
    expenseSplitDefault: Optional[Literal["equal", "percentage", "custom"]] = None
    parent1Percentage: Optional[int] = Field(None, ge=0, le=100)
    parent2Percentage: Optional[int] = Field(None, ge=0, le=100)
    allowSwapRequests: Optional[bool] = None
    requireApprovalForSwaps: Optional[bool] = None
    reminderDefaultTime: Optional[str] = None
    enableCalendarReminders: Optional[bool] = None
    calendarReminderMinutes: Optional[int] = Field(None, ge=0)

    @field_validator("reminderDefaultTime")
    @classmethod
    def check_time(cls, v):
        return validate_hh_mm(v)


FAMILY_FIELDS = {
    "defaultCurrency": "default_currency",
    "expenseSplitDefault": "expense_split_default",
    "parent1Percentage": "parent1_percentage",
    "parent2Percentage": "parent2_percentage",
    "allowSwapRequests": "allow_swap_requests",
    "requireApprovalForSwaps": "require_approval_for_swaps",
    "reminderDefaultTime": "reminder_default_time",
    "enableCalendarReminders": "enable_calendar_reminders",
    "calendarReminderMinutes": "calendar_reminder_minutes",
}

# Columns that may be cleared with an explicit null
NULLABLE_FAMILY_COLUMNS = {"reminder_default_time", "calendar_reminder_minutes"}


def _to_dict(row, fields: dict) -> dict:
    return {field: getattr(row, column) for field, column in fields.items()}


def get_or_create_user_settings(db: Session, user_id: str) -> UserSettings:
    settings = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    if not settings:
        settings = UserSettings(user_id=user_id)
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


def get_or_create_family_settings(db: Session, family_id: str) -> FamilySettings:
    settings = db.query(FamilySettings).filter(FamilySettings.family_id == family_id).first()
    if not settings:
        settings = FamilySettings(family_id=family_id)
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


@router.get("/user")
async def get_user_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_dict(get_or_create_user_settings(db, current_user.id), USER_FIELDS)


@router.put("/user")
async def update_user_settings(
    data: UserSettingsPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    settings = get_or_create_user_settings(db, current_user.id)
    for field in data.model_fields_set:
        value = getattr(data, field)
        if value is not None:
            setattr(settings, USER_FIELDS[field], value)
    db.commit()
    db.refresh(settings)
    return _to_dict(settings, USER_FIELDS)


@router.get("/family/{family_id}")
async def get_family_settings(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    db: Session = Depends(get_db),
):
    return _to_dict(get_or_create_family_settings(db, family_id), FAMILY_FIELDS)


@router.put("/family/{family_id}")
async def update_family_settings(
    family_id: str,
    data: FamilySettingsPayload,
    member: FamilyMember = Depends(get_family_member),
    db: Session = Depends(get_db),
):
    """Partial update; the resulting parent split must still add up to 100"""
    settings = get_or_create_family_settings(db, family_id)

    parent1 = data.parent1Percentage if data.parent1Percentage is not None else settings.parent1_percentage
    parent2 = data.parent2Percentage if data.parent2Percentage is not None else settings.parent2_percentage
    try:
        validate_percentage_split(parent1, parent2)
    except ValueError as e:
        raise ValidationFailed(str(e), "invalid-percentage-split")

    for field in data.model_fields_set:
        value = getattr(data, field)
        column = FAMILY_FIELDS[field]
        if value is None and column not in NULLABLE_FAMILY_COLUMNS:
            continue
        setattr(settings, column, value)
    db.commit()
    db.refresh(settings)
    logger.info(f"⚙️ Family settings updated for {family_id}")

    payload = _to_dict(settings, FAMILY_FIELDS)
    await emit_to_family(family_id, "settings:updated", payload)
    return payload
