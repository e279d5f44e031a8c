"""
Custody schedule service.

A family has a single custody schedule. Saving with ``requestApproval`` stages
the proposed pattern as a pending approval instead of touching the live
pattern; the other parent then approves (fields copied, schedule activated,
pending row removed in one commit) or rejects (pending row removed). The
requester may cancel their own pending change.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import Forbidden, NotFound
from ...membership import get_sorted_member_ids
from ...models import User
from ...models_calendar import CustodyApproval, CustodySchedule
from ...realtime import emit_to_family
from ...services.notification_service import create_notification, notify_users
from ...utils.dates import utcnow
from ...utils.helpers import display_name
from .repository import CalendarRepository
from .schemas import CustodyScheduleInput, CustodyScheduleResponse

logger = logging.getLogger(__name__)

PATTERN_FIELDS = (
    "name",
    "pattern",
    "start_date",
    "end_date",
    "parent1_days",
    "parent2_days",
    "biweekly_alt_parent1_days",
    "biweekly_alt_parent2_days",
)


def _pattern_values(data: CustodyScheduleInput) -> dict:
    return {
        "name": data.name,
        "pattern": data.pattern,
        "start_date": data.startDate,
        "end_date": data.endDate,
        "parent1_days": list(data.parent1Days),
        "parent2_days": list(data.parent2Days),
        "biweekly_alt_parent1_days": list(data.biweeklyAltParent1Days),
        "biweekly_alt_parent2_days": list(data.biweeklyAltParent2Days),
    }


class CustodyService:
    """Service layer for the custody schedule approval workflow"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarRepository()

    def get_schedule(self, family_id: str) -> Optional[CustodySchedule]:
        return self.repo.get_custody_schedule(self.db, family_id)

    def _get_pending(self, family_id: str) -> tuple[CustodySchedule, CustodyApproval]:
        schedule = self.get_schedule(family_id)
        if not schedule or not schedule.pending_approval:
            raise NotFound("No pending custody approval", "no-pending-approval")
        return schedule, schedule.pending_approval

    async def _broadcast(self, schedule: CustodySchedule) -> None:
        self.db.refresh(schedule)
        await emit_to_family(
            schedule.family_id,
            "custody:updated",
            CustodyScheduleResponse.from_model(schedule).model_dump(),
        )

    async def save_schedule(
        self, family_id: str, data: CustodyScheduleInput, user: User
    ) -> CustodySchedule:
        values = _pattern_values(data)
        schedule = self.get_schedule(family_id)

        if data.requestApproval:
            requester_name = display_name(user.full_name, user.email)
            if schedule is None:
                # First save still needs consent: keep it inactive until approved
                schedule = CustodySchedule(family_id=family_id, is_active=False, **values)
                self.db.add(schedule)

            pending = schedule.pending_approval
            if pending is None:
                pending = CustodyApproval()
                schedule.pending_approval = pending
            for key, value in values.items():
                setattr(pending, key, value)
            pending.requested_by_id = user.id
            pending.requested_by_name = requester_name
            pending.requested_at = utcnow()
            self.db.commit()
            logger.info(f"📝 Custody change requested by {user.id} for family {family_id}")

            await self._broadcast(schedule)
            others = [m for m in get_sorted_member_ids(self.db, family_id) if m != user.id]
            notify_users(
                self.db,
                others,
                "custody_approval_request",
                "New custody schedule request",
                f"{requester_name} asked you to approve a new custody schedule",
                family_id=family_id,
            )
            return schedule

        if schedule is None:
            schedule = CustodySchedule(family_id=family_id, is_active=data.isActive, **values)
            self.db.add(schedule)
        else:
            for key, value in values.items():
                setattr(schedule, key, value)
            schedule.is_active = data.isActive
        self.db.commit()
        logger.info(f"✅ Custody schedule saved for family {family_id}")

        await self._broadcast(schedule)
        return schedule

    async def respond(self, family_id: str, approve: bool, user: User) -> CustodySchedule:
        schedule, pending = self._get_pending(family_id)
        if pending.requested_by_id == user.id:
            raise Forbidden("You cannot respond to your own request", "requester-cannot-approve")

        requester_id = pending.requested_by_id
        if approve:
            for key in PATTERN_FIELDS:
                setattr(schedule, key, getattr(pending, key))
            schedule.is_active = True
        schedule.pending_approval = None
        self.db.commit()
        logger.info(
            f"{'✅' if approve else '❌'} Custody change {'approved' if approve else 'rejected'} in family {family_id}"
        )

        await self._broadcast(schedule)
        if approve:
            title, body = "Custody request approved", "The other parent approved the new custody schedule"
        else:
            title, body = "Custody request rejected", "The other parent rejected the custody schedule change"
        create_notification(
            self.db,
            requester_id,
            "custody_approved" if approve else "custody_rejected",
            title,
            body,
            family_id=family_id,
        )
        return schedule

    async def cancel(self, family_id: str, user: User) -> CustodySchedule:
        schedule, pending = self._get_pending(family_id)
        if pending.requested_by_id != user.id:
            raise Forbidden("Only the requester can cancel this request", "only-requester-can-cancel")

        schedule.pending_approval = None
        self.db.commit()
        await self._broadcast(schedule)
        return schedule

    async def delete_schedule(self, family_id: str) -> None:
        """Removes the schedule and the family's custody events"""
        schedule = self.get_schedule(family_id)
        if schedule:
            self.db.delete(schedule)
        removed = self.repo.delete_events_by_type(self.db, family_id, "custody")
        self.db.commit()
        logger.info(f"🗑️ Custody schedule deleted for family {family_id} ({removed} custody events)")
        await emit_to_family(family_id, "custody:deleted", {"familyId": family_id})
