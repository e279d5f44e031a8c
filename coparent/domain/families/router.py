"""Family router - FastAPI endpoints for families, invites and children"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...membership import get_family_member, get_sorted_member_ids
from ...models import FamilyMember, User
from .schemas import (
    ChildCreate,
    ChildResponse,
    ChildUpdate,
    FamilyCreate,
    FamilyResponse,
    FamilyUpdate,
    InviteCoParent,
    InviteResponse,
    JoinByCode,
    MemberResponse,
)
from .service import FamilyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/families", tags=["Families"])


def get_family_service(db: Session = Depends(get_db)) -> FamilyService:
    """Dependency injection for FamilyService"""
    return FamilyService(db)


@router.post("", response_model=FamilyResponse, status_code=201)
async def create_family(
    data: FamilyCreate,
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    """Create a family with the caller as owner"""
    return FamilyResponse.from_model(service.create_family(data, current_user))


@router.post("/join", response_model=FamilyResponse)
async def join_family(
    data: JoinByCode,
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    """Join a family with its six digit share code"""
    return FamilyResponse.from_model(await service.join_by_code(data.shareCode, current_user))


@router.post("/accept-invite", response_model=FamilyResponse)
async def accept_invite(
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    """Accept the pending invite sent to the caller's email"""
    return FamilyResponse.from_model(await service.accept_invite(current_user))


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: FamilyService = Depends(get_family_service),
):
    return FamilyResponse.from_model(service.get_family(family_id))


@router.patch("/{family_id}", response_model=FamilyResponse)
async def update_family(
    family_id: str,
    data: FamilyUpdate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    return FamilyResponse.from_model(await service.update_family(family_id, data, current_user))


@router.delete("/{family_id}")
async def delete_family(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: FamilyService = Depends(get_family_service),
):
    """Delete the family and everything in it (owner only)"""
    service.delete_family(family_id, member)
    return {"message": "Family deleted"}


@router.post("/{family_id}/invite", response_model=InviteResponse, status_code=201)
async def invite_co_parent(
    family_id: str,
    data: InviteCoParent,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    invite, email_sent = await service.invite_co_parent(family_id, data.email, current_user)
    return InviteResponse.from_model(invite, email_sent)


@router.post("/{family_id}/leave")
async def leave_family(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    await service.leave_family(family_id, current_user)
    return {"message": "Left family"}


@router.post("/{family_id}/regenerate-code")
async def regenerate_share_code(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: FamilyService = Depends(get_family_service),
):
    return {"shareCode": service.regenerate_share_code(family_id)}


@router.get("/{family_id}/members", response_model=list[MemberResponse])
async def get_members(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    db: Session = Depends(get_db),
    service: FamilyService = Depends(get_family_service),
):
    member_ids = get_sorted_member_ids(db, family_id)
    return [MemberResponse.from_model(m, member_ids) for m in service.get_members(family_id)]


# ============================================================================
# CHILDREN
# ============================================================================


@router.post("/{family_id}/children", response_model=ChildResponse, status_code=201)
async def add_child(
    family_id: str,
    data: ChildCreate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    return ChildResponse.from_model(await service.add_child(family_id, data, current_user))


@router.patch("/{family_id}/children/{child_id}", response_model=ChildResponse)
async def update_child(
    family_id: str,
    child_id: str,
    data: ChildUpdate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    return ChildResponse.from_model(await service.update_child(family_id, child_id, data, current_user))


@router.delete("/{family_id}/children/{child_id}")
async def remove_child(
    family_id: str,
    child_id: str,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    await service.remove_child(family_id, child_id, current_user)
    return {"message": "Child removed"}
