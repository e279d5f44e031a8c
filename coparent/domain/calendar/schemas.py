"""Calendar domain schemas - events and custody schedules"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models_calendar import CalendarEvent, CustodyApproval, CustodySchedule
from ...shared.validators import validate_uuid, validate_weekdays
from ...utils.dates import to_naive_utc

EventType = Literal[
    "custody", "pickup", "dropoff", "school", "activity", "medical", "holiday", "vacation", "other"
]
ParentId = Literal["parent1", "parent2", "both"]
CustodyPattern = Literal["weekly", "biweekly", "custom", "week_on_week_off"]


class EventCreate(BaseModel):
    """Schema for creating a calendar event"""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    startDate: datetime
    endDate: datetime
    type: EventType = "other"
    parentId: ParentId = "both"
    color: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=200)
    reminderMinutes: Optional[int] = Field(None, ge=0)
    isAllDay: bool = False
    childId: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @field_validator("childId")
    @classmethod
    def check_child_id(cls, v):
        return validate_uuid(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must not be before startDate")
        return self


class EventUpdate(BaseModel):
    """Schema for updating an event; only fields sent are changed"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    type: Optional[EventType] = None
    parentId: Optional[ParentId] = None
    color: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=200)
    reminderMinutes: Optional[int] = Field(None, ge=0)
    isAllDay: Optional[bool] = None
    childId: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @field_validator("childId")
    @classmethod
    def check_child_id(cls, v):
        return validate_uuid(v)


class EventResponse(BaseModel):
    id: str
    familyId: str
    title: str
    description: Optional[str] = None
    startDate: datetime
    endDate: datetime
    type: str
    parentId: str
    targetUids: list[str] = []
    color: Optional[str] = None
    location: Optional[str] = None
    reminderMinutes: Optional[int] = None
    isAllDay: bool
    childId: Optional[str] = None
    swapRequestId: Optional[str] = None
    createdById: str
    createdByName: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, event: CalendarEvent) -> "EventResponse":
        return cls(
            id=event.id,
            familyId=event.family_id,
            title=event.title,
            description=event.description,
            startDate=event.start_date,
            endDate=event.end_date,
            type=event.type,
            parentId=event.parent_id,
            targetUids=list(event.target_uids or []),
            color=event.color,
            location=event.location,
            reminderMinutes=event.reminder_minutes,
            isAllDay=event.is_all_day,
            childId=event.child_id,
            swapRequestId=event.swap_request_id,
            createdById=event.created_by_id,
            createdByName=event.created_by_name,
            createdAt=event.created_at,
            updatedAt=event.updated_at,
        )


class CustodyScheduleInput(BaseModel):
    """Schema for saving the family custody pattern"""

    name: Optional[str] = Field(None, max_length=100)
    pattern: CustodyPattern
    startDate: datetime
    endDate: Optional[datetime] = None
    parent1Days: list[int]
    parent2Days: list[int]
    biweeklyAltParent1Days: list[int] = []
    biweeklyAltParent2Days: list[int] = []
    isActive: bool = True
    requestApproval: bool = False

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @field_validator("parent1Days", "parent2Days", "biweeklyAltParent1Days", "biweeklyAltParent2Days")
    @classmethod
    def check_days(cls, v):
        return validate_weekdays(v)


class ApprovalDecision(BaseModel):
    approve: bool


class PendingApprovalResponse(BaseModel):
    id: str
    name: Optional[str] = None
    pattern: str
    startDate: datetime
    endDate: Optional[datetime] = None
    parent1Days: list[int]
    parent2Days: list[int]
    biweeklyAltParent1Days: list[int] = []
    biweeklyAltParent2Days: list[int] = []
    requestedById: str
    requestedByName: Optional[str] = None
    requestedAt: datetime

    @classmethod
    def from_model(cls, pending: CustodyApproval) -> "PendingApprovalResponse":
        return cls(
            id=pending.id,
            name=pending.name,
            pattern=pending.pattern,
            startDate=pending.start_date,
            endDate=pending.end_date,
            parent1Days=list(pending.parent1_days or []),
            parent2Days=list(pending.parent2_days or []),
            biweeklyAltParent1Days=list(pending.biweekly_alt_parent1_days or []),
            biweeklyAltParent2Days=list(pending.biweekly_alt_parent2_days or []),
            requestedById=pending.requested_by_id,
            requestedByName=pending.requested_by_name,
            requestedAt=pending.requested_at,
        )


class CustodyScheduleResponse(BaseModel):
    id: str
    familyId: str
    name: Optional[str] = None
    pattern: str
    startDate: datetime
    endDate: Optional[datetime] = None
    parent1Days: list[int]
    parent2Days: list[int]
    biweeklyAltParent1Days: list[int] = []
    biweeklyAltParent2Days: list[int] = []
    isActive: bool
    version: int
    pendingApproval: Optional[PendingApprovalResponse] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, schedule: CustodySchedule) -> "CustodyScheduleResponse":
        pending = schedule.pending_approval
        return cls(
            id=schedule.id,
            familyId=schedule.family_id,
            name=schedule.name,
            pattern=schedule.pattern,
            startDate=schedule.start_date,
            endDate=schedule.end_date,
            parent1Days=list(schedule.parent1_days or []),
            parent2Days=list(schedule.parent2_days or []),
            biweeklyAltParent1Days=list(schedule.biweekly_alt_parent1_days or []),
            biweeklyAltParent2Days=list(schedule.biweekly_alt_parent2_days or []),
            isActive=schedule.is_active,
            version=schedule.version,
            pendingApproval=PendingApprovalResponse.from_model(pending) if pending else None,
            updatedAt=schedule.updated_at,
        )
