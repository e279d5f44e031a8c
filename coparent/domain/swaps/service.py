"""
Swap request service.

Requests move through the lifecycle in ``state_machine``. Approval rewrites the
calendar: any events previously derived from the request are removed and one
all-day custody event per exchanged date is created, owned by the parent who
takes the child that day.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import Forbidden, InvalidState, NotFound
from ...membership import get_sorted_member_ids, parent_role_of
from ...models import User
from ...models_calendar import CalendarEvent, SwapRequest
from ...realtime import emit_to_family
from ...services.notification_service import create_notification
from ...utils.dates import end_of_day, start_of_day, utcnow
from ...utils.helpers import display_name
from . import state_machine as sm
from .repository import SwapRequestRepository
from .schemas import (
    SwapCounter,
    SwapCounterRejection,
    SwapRequestCreate,
    SwapRequestResponse,
    SwapStatusUpdate,
)

logger = logging.getLogger(__name__)

SWAP_EVENT_COLOR = "#8b5cf6"
DEFAULT_SWAP_DESCRIPTION = "Created from an approved custody swap request"


def _format_day(value: Optional[datetime]) -> str:
    return value.strftime("%b %d, %Y") if value else "an unspecified day"


class SwapRequestService:
    """Service layer for custody swap requests"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SwapRequestRepository()

    def get_requests(self, family_id: str, status: Optional[str] = None) -> list[SwapRequest]:
        return self.repo.get_requests(self.db, family_id, status)

    def get_request(self, family_id: str, request_id: str) -> SwapRequest:
        swap = self.repo.get_request(self.db, family_id, request_id)
        if not swap:
            raise NotFound("Swap request not found", "swap-request-not-found")
        return swap

    async def _broadcast(self, event: str, swap: SwapRequest) -> None:
        self.db.refresh(swap)
        await emit_to_family(swap.family_id, event, SwapRequestResponse.from_model(swap).model_dump())

    def _notify(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        body: str,
        swap: SwapRequest,
        send_push: bool = True,
    ) -> None:
        create_notification(
            self.db,
            user_id,
            notification_type,
            title,
            body,
            family_id=swap.family_id,
            data={"swapRequestId": swap.id},
            action_url=f"/swap-requests/{swap.id}",
            send_push=send_push,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_request(self, family_id: str, data: SwapRequestCreate, user: User) -> SwapRequest:
        if not self.repo.swaps_allowed(self.db, family_id):
            raise Forbidden("Swap requests are disabled for this family", "swap-requests-disabled")

        other = self.repo.get_other_member(self.db, family_id, user.id)
        if not other:
            raise InvalidState("Invite the other parent before requesting a swap", "no-other-parent")

        requester_name = display_name(user.full_name, user.email)
        recipient = other.user
        swap = SwapRequest(
            family_id=family_id,
            requester_id=user.id,
            requester_name=requester_name,
            recipient_id=other.user_id,
            recipient_name=display_name(recipient.full_name, recipient.email) if recipient else None,
            original_date=data.originalDate,
            proposed_date=data.proposedDate,
            request_type=data.requestType,
            reason=(data.reason or "").strip() or None,
            status=sm.PENDING,
        )
        self.db.add(swap)
        self.db.commit()
        logger.info(f"🔁 Swap request {swap.id} created by {user.id} in family {family_id}")

        await self._broadcast("swap:created", swap)
        self._notify(
            swap.recipient_id,
            "swap_request_created",
            "New swap request",
            f"{requester_name} requested a custody swap for {_format_day(swap.original_date)}",
            swap,
        )
        return swap

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def update_status(
        self, family_id: str, request_id: str, data: SwapStatusUpdate, user: User
    ) -> SwapRequest:
        swap = self.get_request(family_id, request_id)
        transition = sm.check_transition(swap, sm.STATUS_ACTIONS[data.status], user.id)

        now = utcnow()
        swap.status = transition.target
        swap.response_note = data.responseNote
        swap.responded_at = now

        if transition.target == sm.APPROVED:
            self._apply_to_calendar(swap)

        self.db.commit()
        logger.info(f"🔁 Swap request {swap.id} {swap.status} by {user.id}")

        await self._broadcast("swap:updated", swap)

        actor_name = display_name(user.full_name, user.email)
        if transition.target == sm.CANCELLED:
            self._notify(
                swap.recipient_id,
                "swap_request_cancelled",
                "Swap request cancelled",
                f"{actor_name} cancelled the swap request for {_format_day(swap.original_date)}",
                swap,
                send_push=False,
            )
        else:
            self._notify(
                swap.requester_id,
                f"swap_request_{transition.target}",
                f"Swap request {transition.target}",
                f"{actor_name} {transition.target} your swap request for {_format_day(swap.original_date)}",
                swap,
            )
        return swap

    async def counter(self, family_id: str, request_id: str, data: SwapCounter, user: User) -> SwapRequest:
        swap = self.get_request(family_id, request_id)
        if swap.request_type != "swap":
            raise InvalidState("One-way requests cannot be countered", "swap-counter-not-allowed")
        transition = sm.check_transition(swap, "counter", user.id)

        swap.previous_proposed_date = swap.proposed_date
        swap.proposed_date = data.proposedDate
        swap.counter_note = data.counterNote
        swap.countered_by_id = user.id
        swap.countered_at = utcnow()
        swap.requester_confirmed_at = None
        swap.counter_response_note = None
        swap.counter_responded_at = None
        swap.response_note = None
        swap.responded_at = None
        swap.status = transition.target
        self.db.commit()
        logger.info(f"↩️ Swap request {swap.id} countered by {user.id}")

        await self._broadcast("swap:updated", swap)
        self._notify(
            swap.requester_id,
            "swap_request_countered",
            "Swap request countered",
            f"{display_name(user.full_name, user.email)} proposed {_format_day(swap.proposed_date)} instead",
            swap,
        )
        return swap

    async def accept_counter(self, family_id: str, request_id: str, user: User) -> SwapRequest:
        swap = self.get_request(family_id, request_id)
        transition = sm.check_transition(swap, "accept_counter", user.id)

        now = utcnow()
        swap.status = transition.target
        swap.requester_confirmed_at = now
        swap.counter_responded_at = now
        swap.counter_response_note = None
        swap.previous_proposed_date = None
        self.db.commit()
        logger.info(f"🤝 Counter offer accepted on swap request {swap.id}")

        await self._broadcast("swap:updated", swap)
        self._notify(
            swap.recipient_id,
            "swap_request_counter_accepted",
            "Counter offer accepted",
            f"{display_name(user.full_name, user.email)} accepted your counter offer. Please give final approval.",
            swap,
        )
        return swap

    async def reject_counter(
        self, family_id: str, request_id: str, data: SwapCounterRejection, user: User
    ) -> SwapRequest:
        swap = self.get_request(family_id, request_id)
        transition = sm.check_transition(swap, "reject_counter", user.id)

        if swap.previous_proposed_date is not None:
            swap.proposed_date = swap.previous_proposed_date
        swap.previous_proposed_date = None
        swap.counter_note = None
        swap.countered_by_id = None
        swap.countered_at = None
        swap.requester_confirmed_at = None
        swap.counter_response_note = data.counterResponseNote
        swap.counter_responded_at = utcnow()
        swap.status = transition.target
        self.db.commit()
        logger.info(f"↪️ Counter offer rejected on swap request {swap.id}")

        await self._broadcast("swap:updated", swap)
        self._notify(
            swap.recipient_id,
            "swap_request_counter_rejected",
            "Counter offer declined",
            f"{display_name(user.full_name, user.email)} kept the original proposal",
            swap,
        )
        return swap

    # ------------------------------------------------------------------
    # Calendar side effect
    # ------------------------------------------------------------------

    def _apply_to_calendar(self, swap: SwapRequest) -> list[CalendarEvent]:
        """Replace the request's derived custody events. Runs inside the approval commit."""
        removed = self.repo.delete_derived_events(self.db, swap.id)
        if removed:
            logger.info(f"🧹 Removed {removed} stale events for swap request {swap.id}")

        member_ids = get_sorted_member_ids(self.db, swap.family_id)
        requester_role = parent_role_of(member_ids, swap.requester_id) or "both"
        recipient_role = parent_role_of(member_ids, swap.recipient_id) or "both"
        description = swap.reason or DEFAULT_SWAP_DESCRIPTION

        exchanges = []
        if swap.request_type == "one-way":
            exchanges.append(
                (swap.original_date, recipient_role, "Approved custody swap - day handed over without return")
            )
        else:
            exchanges.append((swap.original_date, recipient_role, "Approved custody swap - day handed over"))
            if swap.proposed_date is not None:
                exchanges.append((swap.proposed_date, requester_role, "Approved custody swap - day received"))

        events = []
        for day, parent_id, title in exchanges:
            event = CalendarEvent(
                family_id=swap.family_id,
                title=title,
                description=description,
                start_date=start_of_day(day),
                end_date=end_of_day(day),
                type="custody",
                parent_id=parent_id,
                target_uids=list(member_ids),
                color=SWAP_EVENT_COLOR,
                is_all_day=True,
                swap_request_id=swap.id,
                created_by_id=swap.recipient_id,
                created_by_name=swap.recipient_name,
            )
            self.db.add(event)
            events.append(event)
        return events
