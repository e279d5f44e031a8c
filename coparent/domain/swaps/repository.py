"""Swap request repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import FamilyMember, FamilySettings
from ...models_calendar import CalendarEvent, SwapRequest


class SwapRequestRepository:
    """Repository for swap request database operations"""

    @staticmethod
    def get_requests(db: Session, family_id: str, status: Optional[str] = None) -> list[SwapRequest]:
        query = db.query(SwapRequest).filter(SwapRequest.family_id == family_id)
        if status:
            query = query.filter(SwapRequest.status == status)
        return query.order_by(SwapRequest.created_at.desc()).all()

    @staticmethod
    def get_request(db: Session, family_id: str, request_id: str) -> Optional[SwapRequest]:
        return (
            db.query(SwapRequest)
            .filter(SwapRequest.id == request_id, SwapRequest.family_id == family_id)
            .first()
        )

    @staticmethod
    def get_other_member(db: Session, family_id: str, user_id: str) -> Optional[FamilyMember]:
        return (
            db.query(FamilyMember)
            .filter(FamilyMember.family_id == family_id, FamilyMember.user_id != user_id)
            .order_by(FamilyMember.user_id)
            .first()
        )

    @staticmethod
    def swaps_allowed(db: Session, family_id: str) -> bool:
        settings = db.query(FamilySettings).filter(FamilySettings.family_id == family_id).first()
        return settings is None or settings.allow_swap_requests

    @staticmethod
    def delete_derived_events(db: Session, swap_request_id: str) -> int:
        events = db.query(CalendarEvent).filter(CalendarEvent.swap_request_id == swap_request_id).all()
        for event in events:
            db.delete(event)
        return len(events)
