"""Calendar service - Business logic for family calendar events"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFound, ValidationFailed
from ...membership import get_sorted_member_ids, resolve_target_uids
from ...models import User
from ...models_calendar import CalendarEvent
from ...realtime import emit_to_family
from ...services.notification_service import notify_users
from ...services.reminder_service import format_reminder_time, upsert_event_reminder
from ...utils.helpers import display_name
from .repository import CalendarRepository
from .schemas import EventCreate, EventResponse, EventUpdate

logger = logging.getLogger(__name__)


class CalendarService:
    """Service layer for calendar events"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarRepository()

    def _check_child(self, family_id: str, child_id: Optional[str]) -> Optional[str]:
        if child_id and not self.repo.child_exists(self.db, family_id, child_id):
            raise ValidationFailed("Child not found", "child-not-found")
        return child_id

    def get_events(
        self,
        family_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        event_type: Optional[str] = None,
    ) -> list[CalendarEvent]:
        return self.repo.get_events(self.db, family_id, start, end, event_type)

    def get_event(self, family_id: str, event_id: str) -> CalendarEvent:
        event = self.repo.get_event(self.db, family_id, event_id)
        if not event:
            raise NotFound("Event not found", "event-not-found")
        return event

    async def create_event(self, family_id: str, data: EventCreate, user: User) -> CalendarEvent:
        member_ids = get_sorted_member_ids(self.db, family_id)
        event = CalendarEvent(
            family_id=family_id,
            title=data.title,
            description=data.description,
            start_date=data.startDate,
            end_date=data.endDate,
            type=data.type,
            parent_id=data.parentId,
            target_uids=resolve_target_uids(member_ids, data.parentId),
            color=data.color,
            location=data.location,
            reminder_minutes=data.reminderMinutes,
            is_all_day=data.isAllDay,
            child_id=self._check_child(family_id, data.childId),
            created_by_id=user.id,
            created_by_name=display_name(user.full_name, user.email),
        )
        self.db.add(event)
        self.db.flush()
        upsert_event_reminder(self.db, event)
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"📅 Event created: {event.id} in family {family_id}")

        await emit_to_family(
            family_id, "event:created", EventResponse.from_model(event).model_dump(), user.id
        )
        notify_users(
            self.db,
            [uid for uid in member_ids if uid != user.id],
            "calendar_event_created",
            "New family calendar event",
            f"{event.title} • {format_reminder_time(event.start_date)}",
            family_id=family_id,
            data={"eventId": event.id},
        )
        return event

    async def update_event(
        self, family_id: str, event_id: str, data: EventUpdate, user: User
    ) -> CalendarEvent:
        event = self.get_event(family_id, event_id)
        fields = data.model_fields_set

        if data.title is not None:
            event.title = data.title
        if "description" in fields:
            event.description = data.description
        if data.startDate is not None:
            event.start_date = data.startDate
        if data.endDate is not None:
            event.end_date = data.endDate
        if data.type is not None:
            event.type = data.type
        if data.parentId is not None and data.parentId != event.parent_id:
            event.parent_id = data.parentId
            event.target_uids = resolve_target_uids(
                get_sorted_member_ids(self.db, family_id), data.parentId
            )
        if "color" in fields:
            event.color = data.color
        if "location" in fields:
            event.location = data.location
        if "reminderMinutes" in fields:
            event.reminder_minutes = data.reminderMinutes
        if data.isAllDay is not None:
            event.is_all_day = data.isAllDay
        if "childId" in fields:
            event.child_id = self._check_child(family_id, data.childId)

        if event.end_date < event.start_date:
            raise ValidationFailed("endDate must not be before startDate")

        upsert_event_reminder(self.db, event)
        self.db.commit()
        self.db.refresh(event)

        await emit_to_family(family_id, "event:updated", EventResponse.from_model(event).model_dump())
        return event

    async def delete_event(self, family_id: str, event_id: str) -> None:
        """Deletes the event together with its reminder"""
        event = self.get_event(family_id, event_id)
        self.db.delete(event)
        self.db.commit()
        await emit_to_family(family_id, "event:deleted", {"id": event_id})
