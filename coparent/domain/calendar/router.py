"""Calendar router - FastAPI endpoints for events and the custody schedule"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...membership import get_family_member
from ...models import FamilyMember, User
from ...utils.dates import to_naive_utc
from .custody_service import CustodyService
from .schemas import (
    ApprovalDecision,
    CustodyScheduleInput,
    CustodyScheduleResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
)
from .service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["Calendar"])


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db)


def get_custody_service(db: Session = Depends(get_db)) -> CustodyService:
    """Dependency injection for CustodyService"""
    return CustodyService(db)


# ============================================================================
# EVENTS
# ============================================================================


@router.get("/{family_id}/events", response_model=list[EventResponse])
async def get_events(
    family_id: str,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    event_type: Optional[str] = Query(None, alias="type"),
    member: FamilyMember = Depends(get_family_member),
    service: CalendarService = Depends(get_calendar_service),
):
    """List family events, optionally overlapping a date range"""
    events = service.get_events(
        family_id, to_naive_utc(start_date), to_naive_utc(end_date), event_type
    )
    return [EventResponse.from_model(e) for e in events]


@router.get("/{family_id}/events/{event_id}", response_model=EventResponse)
async def get_event(
    family_id: str,
    event_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: CalendarService = Depends(get_calendar_service),
):
    return EventResponse.from_model(service.get_event(family_id, event_id))


@router.post("/{family_id}/events", response_model=EventResponse, status_code=201)
async def create_event(
    family_id: str,
    data: EventCreate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    return EventResponse.from_model(await service.create_event(family_id, data, current_user))


@router.patch("/{family_id}/events/{event_id}", response_model=EventResponse)
async def update_event(
    family_id: str,
    event_id: str,
    data: EventUpdate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    return EventResponse.from_model(
        await service.update_event(family_id, event_id, data, current_user)
    )


@router.delete("/{family_id}/events/{event_id}")
async def delete_event(
    family_id: str,
    event_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: CalendarService = Depends(get_calendar_service),
):
    await service.delete_event(family_id, event_id)
    return {"message": "Event deleted"}


# ============================================================================
# CUSTODY SCHEDULE
# ============================================================================


@router.get("/{family_id}/custody", response_model=Optional[CustodyScheduleResponse])
async def get_custody_schedule(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: CustodyService = Depends(get_custody_service),
):
    schedule = service.get_schedule(family_id)
    return CustodyScheduleResponse.from_model(schedule) if schedule else None


@router.put("/{family_id}/custody", response_model=CustodyScheduleResponse)
async def save_custody_schedule(
    family_id: str,
    data: CustodyScheduleInput,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: CustodyService = Depends(get_custody_service),
):
    """Save the pattern directly, or stage it for the other parent with requestApproval"""
    schedule = await service.save_schedule(family_id, data, current_user)
    return CustodyScheduleResponse.from_model(schedule)


@router.post("/{family_id}/custody/approve", response_model=CustodyScheduleResponse)
async def respond_to_custody_approval(
    family_id: str,
    data: ApprovalDecision,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: CustodyService = Depends(get_custody_service),
):
    schedule = await service.respond(family_id, data.approve, current_user)
    return CustodyScheduleResponse.from_model(schedule)


@router.post("/{family_id}/custody/cancel", response_model=CustodyScheduleResponse)
async def cancel_custody_approval(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: CustodyService = Depends(get_custody_service),
):
    schedule = await service.cancel(family_id, current_user)
    return CustodyScheduleResponse.from_model(schedule)


@router.delete("/{family_id}/custody")
async def delete_custody_schedule(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: CustodyService = Depends(get_custody_service),
):
    await service.delete_schedule(family_id)
    return {"message": "Custody schedule deleted"}
