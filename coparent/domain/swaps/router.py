"""Swap request router - FastAPI endpoints for custody swap negotiation"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...membership import get_family_member
from ...models import FamilyMember, User
from .schemas import (
    SwapCounter,
    SwapCounterRejection,
    SwapRequestCreate,
    SwapRequestResponse,
    SwapStatusUpdate,
)
from .service import SwapRequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/swap-requests", tags=["Swap Requests"])


def get_swap_service(db: Session = Depends(get_db)) -> SwapRequestService:
    """Dependency injection for SwapRequestService"""
    return SwapRequestService(db)


@router.get("/{family_id}", response_model=list[SwapRequestResponse])
async def get_swap_requests(
    family_id: str,
    status: Optional[str] = Query(None),
    member: FamilyMember = Depends(get_family_member),
    service: SwapRequestService = Depends(get_swap_service),
):
    return [SwapRequestResponse.from_model(s) for s in service.get_requests(family_id, status)]


@router.post("/{family_id}", response_model=SwapRequestResponse, status_code=201)
async def create_swap_request(
    family_id: str,
    data: SwapRequestCreate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: SwapRequestService = Depends(get_swap_service),
):
    """Ask the other parent to swap (or take over) a custody day"""
    swap = await service.create_request(family_id, data, current_user)
    return SwapRequestResponse.from_model(swap)


@router.get("/{family_id}/{request_id}", response_model=SwapRequestResponse)
async def get_swap_request(
    family_id: str,
    request_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: SwapRequestService = Depends(get_swap_service),
):
    return SwapRequestResponse.from_model(service.get_request(family_id, request_id))


@router.patch("/{family_id}/{request_id}/status", response_model=SwapRequestResponse)
async def update_swap_status(
    family_id: str,
    request_id: str,
    data: SwapStatusUpdate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: SwapRequestService = Depends(get_swap_service),
):
    """Approve, reject or cancel a swap request"""
    swap = await service.update_status(family_id, request_id, data, current_user)
    return SwapRequestResponse.from_model(swap)


@router.post("/{family_id}/{request_id}/counter", response_model=SwapRequestResponse)
async def counter_swap_request(
    family_id: str,
    request_id: str,
    data: SwapCounter,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: SwapRequestService = Depends(get_swap_service),
):
    swap = await service.counter(family_id, request_id, data, current_user)
    return SwapRequestResponse.from_model(swap)


@router.post("/{family_id}/{request_id}/accept-counter", response_model=SwapRequestResponse)
async def accept_counter_offer(
    family_id: str,
    request_id: str,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: SwapRequestService = Depends(get_swap_service),
):
    swap = await service.accept_counter(family_id, request_id, current_user)
    return SwapRequestResponse.from_model(swap)


@router.post("/{family_id}/{request_id}/reject-counter", response_model=SwapRequestResponse)
async def reject_counter_offer(
    family_id: str,
    request_id: str,
    data: Optional[SwapCounterRejection] = None,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: SwapRequestService = Depends(get_swap_service),
):
    swap = await service.reject_counter(
        family_id, request_id, data or SwapCounterRejection(), current_user
    )
    return SwapRequestResponse.from_model(swap)
