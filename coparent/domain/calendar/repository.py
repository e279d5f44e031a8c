"""Calendar repository - Database operations for events and custody schedules"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ...models import FamilyChild
from ...models_calendar import CalendarEvent, CustodySchedule


class CalendarRepository:
    """Repository for calendar database operations"""

    @staticmethod
    def get_events(
        db: Session,
        family_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        event_type: Optional[str] = None,
    ) -> list[CalendarEvent]:
        """Events of a family, optionally those overlapping [start, end]"""
        query = db.query(CalendarEvent).filter(CalendarEvent.family_id == family_id)
        if event_type:
            query = query.filter(CalendarEvent.type == event_type)
        if start and end:
            query = query.filter(
                or_(
                    CalendarEvent.start_date.between(start, end),
                    CalendarEvent.end_date.between(start, end),
                    and_(CalendarEvent.start_date <= start, CalendarEvent.end_date >= end),
                )
            )
        return query.order_by(CalendarEvent.start_date.asc()).all()

    @staticmethod
    def get_event(db: Session, family_id: str, event_id: str) -> Optional[CalendarEvent]:
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.id == event_id, CalendarEvent.family_id == family_id)
            .first()
        )

    @staticmethod
    def child_exists(db: Session, family_id: str, child_id: str) -> bool:
        return (
            db.query(FamilyChild.id)
            .filter(FamilyChild.id == child_id, FamilyChild.family_id == family_id)
            .first()
            is not None
        )

    @staticmethod
    def delete_events_by_type(db: Session, family_id: str, event_type: str) -> int:
        events = (
            db.query(CalendarEvent)
            .filter(CalendarEvent.family_id == family_id, CalendarEvent.type == event_type)
            .all()
        )
        for event in events:
            db.delete(event)
        return len(events)

    @staticmethod
    def get_custody_schedule(db: Session, family_id: str) -> Optional[CustodySchedule]:
        return (
            db.query(CustodySchedule)
            .options(joinedload(CustodySchedule.pending_approval))
            .filter(CustodySchedule.family_id == family_id)
            .first()
        )
