"""
Swap request lifecycle.

    pending       -> countered | approved | rejected | cancelled
    countered     -> final_pending | pending (counter rejected) | cancelled
    final_pending -> approved | rejected | cancelled

approved, rejected and cancelled are terminal.
"""

from dataclasses import dataclass

from ...exceptions import Forbidden, InvalidState
from ...models_calendar import SwapRequest

PENDING = "pending"
COUNTERED = "countered"
FINAL_PENDING = "final_pending"
APPROVED = "approved"
REJECTED = "rejected"
CANCELLED = "cancelled"

TERMINAL_STATES = frozenset({APPROVED, REJECTED, CANCELLED})

REQUESTER = "requester"
RECIPIENT = "recipient"


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    actor: str
    target: str


TRANSITIONS = {
    "counter": Transition(frozenset({PENDING}), RECIPIENT, COUNTERED),
    "accept_counter": Transition(frozenset({COUNTERED}), REQUESTER, FINAL_PENDING),
    "reject_counter": Transition(frozenset({COUNTERED}), REQUESTER, PENDING),
    "approve": Transition(frozenset({PENDING, FINAL_PENDING}), RECIPIENT, APPROVED),
    "reject": Transition(frozenset({PENDING, FINAL_PENDING}), RECIPIENT, REJECTED),
    "cancel": Transition(frozenset({PENDING, COUNTERED, FINAL_PENDING}), REQUESTER, CANCELLED),
}

# updateStatus payload value -> action
STATUS_ACTIONS = {APPROVED: "approve", REJECTED: "reject", CANCELLED: "cancel"}


def check_transition(swap: SwapRequest, action: str, user_id: str) -> Transition:
    """Validate that ``user_id`` may perform ``action`` on ``swap`` in its current state.

    Raises InvalidState when the current status has no such edge (every terminal
    status included), then Forbidden when the caller holds the wrong role.
    """
    transition = TRANSITIONS[action]
    if swap.status not in transition.sources:
        raise InvalidState(
            f"Cannot {action.replace('_', ' ')} a swap request that is {swap.status}",
            "invalid-state",
        )

    actor_id = swap.requester_id if transition.actor == REQUESTER else swap.recipient_id
    if actor_id != user_id:
        raise Forbidden(
            f"Only the {transition.actor} can {action.replace('_', ' ')} this swap request",
            f"swap-{action.replace('_', '-')}-forbidden",
        )
    return transition
