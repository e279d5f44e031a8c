"""Family service - Business logic for families, co-parent invites and children"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...email_service import send_family_invite_email
from ...exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from ...models import Family, FamilyChild, FamilyInvite, FamilyMember, User
from ...realtime import emit_to_family, evict_user_from_family
from ...services.notification_service import notify_users
from ...utils.dates import utcnow
from ...utils.helpers import display_name, generate_share_code, normalize_email
from .repository import FamilyRepository
from .schemas import ChildCreate, ChildResponse, ChildUpdate, FamilyCreate, FamilyResponse, FamilyUpdate

logger = logging.getLogger(__name__)

SHARE_CODE_ATTEMPTS = 10


class FamilyService:
    """Service layer for family business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = FamilyRepository()

    def _unique_share_code(self) -> str:
        for _ in range(SHARE_CODE_ATTEMPTS):
            code = generate_share_code()
            if not self.repo.share_code_exists(self.db, code):
                return code
        raise Conflict("Could not generate a unique share code", "share-code-generation-failed")

    def get_family(self, family_id: str) -> Family:
        family = self.repo.get_family(self.db, family_id)
        if not family:
            raise NotFound("Family not found", "family-not-found")
        return family

    def create_family(self, data: FamilyCreate, user: User) -> Family:
        logger.info(f"📥 Creating family for user {user.id}")
        family = Family(
            name=data.name or "My Family",
            owner_id=user.id,
            share_code=self._unique_share_code(),
            share_code_updated_at=utcnow(),
        )
        family.members.append(FamilyMember(user_id=user.id, role="owner"))
        self.db.add(family)
        self.db.flush()
        user.active_family_id = family.id
        self.db.commit()
        logger.info(f"✅ Family created: {family.id}")
        return self.get_family(family.id)

    async def update_family(self, family_id: str, data: FamilyUpdate, user: User) -> Family:
        family = self.get_family(family_id)
        if data.name is not None:
            family.name = data.name
        if "photoUrl" in data.model_fields_set:
            family.photo_url = data.photoUrl
        self.db.commit()
        family = self.get_family(family_id)
        await emit_to_family(
            family_id, "family:updated", FamilyResponse.from_model(family).model_dump(), user.id
        )
        return family

    def delete_family(self, family_id: str, member: FamilyMember) -> None:
        """Owner only; dependent rows go with the family"""
        if member.role != "owner":
            raise Forbidden("Only the owner can delete the family", "owner-only")
        family = self.get_family(family_id)
        self.repo.clear_active_family(self.db, family_id)
        self.db.delete(family)
        self.db.commit()
        logger.info(f"🗑️ Family deleted: {family_id}")

    def regenerate_share_code(self, family_id: str) -> str:
        family = self.get_family(family_id)
        family.share_code = self._unique_share_code()
        family.share_code_updated_at = utcnow()
        self.db.commit()
        return family.share_code

    def get_members(self, family_id: str) -> list[FamilyMember]:
        return self.repo.get_members(self.db, family_id)

    # ========================================================================
    # INVITES AND JOINING
    # ========================================================================

    async def invite_co_parent(self, family_id: str, email: str, user: User) -> tuple[FamilyInvite, bool]:
        """Record an invite and email it. Returns (invite, email_sent)."""
        family = self.get_family(family_id)
        normalized = normalize_email(email)

        if len(family.members) >= config.MAX_FAMILY_MEMBERS:
            raise ValidationFailed("This family already has two parents", "family-full")
        if self.repo.get_invite(self.db, family_id, normalized):
            raise Conflict("This email has already been invited", "already-invited")
        if normalize_email(user.email) == normalized:
            raise ValidationFailed("You cannot invite yourself", "self-invite")

        inviter_name = display_name(user.full_name, user.email)
        invite = FamilyInvite(
            family_id=family_id,
            email=normalized,
            display_email=email.strip(),
            invited_by_id=user.id,
            invited_by_name=inviter_name,
            status="pending",
        )
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"📨 Invite created for {normalized} to family {family_id}")

        email_sent = await send_family_invite_email(
            invite.display_email, inviter_name, family.name, family.share_code
        )
        return invite, email_sent

    def _add_member(self, family_id: str, user: User) -> None:
        self.db.add(FamilyMember(family_id=family_id, user_id=user.id, role="member"))
        user.active_family_id = family_id

    async def _announce_join(self, family_id: str, user: User) -> None:
        name = display_name(user.full_name, user.email)
        await emit_to_family(family_id, "family:member:joined", {"userId": user.id, "fullName": name})
        others = [m.user_id for m in self.repo.get_members(self.db, family_id) if m.user_id != user.id]
        notify_users(
            self.db,
            others,
            "family_member_joined",
            "Co-parent joined",
            f"{name} joined your family",
            family_id=family_id,
        )

    async def accept_invite(self, user: User) -> Family:
        """Join the family that invited the caller's email address"""
        invite = self.repo.get_pending_invite_for_email(self.db, normalize_email(user.email))
        if not invite:
            raise NotFound("No pending invite for this email", "no-pending-invite")

        if not self.repo.get_member(self.db, invite.family_id, user.id):
            if self.repo.count_members(self.db, invite.family_id) >= config.MAX_FAMILY_MEMBERS:
                raise ValidationFailed("This family already has two parents", "family-full")
            self._add_member(invite.family_id, user)

        invite.status = "accepted"
        invite.accepted_at = utcnow()
        self.db.commit()
        logger.info(f"✅ User {user.id} accepted invite to family {invite.family_id}")
        await self._announce_join(invite.family_id, user)
        return self.get_family(invite.family_id)

    async def join_by_code(self, share_code: str, user: User) -> Family:
        family = self.repo.get_family_by_share_code(self.db, share_code)
        if not family:
            raise NotFound("Invalid share code", "invalid-share-code")

        if self.repo.get_member(self.db, family.id, user.id):
            return self.get_family(family.id)
        if self.repo.count_members(self.db, family.id) >= config.MAX_FAMILY_MEMBERS:
            raise ValidationFailed("This family already has two parents", "family-full")

        self._add_member(family.id, user)
        self.db.commit()
        logger.info(f"✅ User {user.id} joined family {family.id} by share code")
        await self._announce_join(family.id, user)
        return self.get_family(family.id)

    async def leave_family(self, family_id: str, user: User) -> None:
        """Leaving owner hands ownership to the remaining member; an empty family is kept"""
        family = self.get_family(family_id)
        leaving: Optional[FamilyMember] = None
        others = []
        for member in family.members:
            if member.user_id == user.id:
                leaving = member
            else:
                others.append(member)
        if leaving is None:
            raise NotFound("You are not a member of this family", "not-family-member")

        if family.owner_id == user.id and others:
            new_owner = others[0]
            family.owner_id = new_owner.user_id
            new_owner.role = "owner"
            logger.info(f"👑 Transferred ownership of {family_id} from {user.id} to {new_owner.user_id}")

        family.members.remove(leaving)
        if user.active_family_id == family_id:
            user.active_family_id = None
        self.db.commit()
        evict_user_from_family(family_id, user.id)
        await emit_to_family(family_id, "family:member:left", {"userId": user.id})

    # ========================================================================
    # CHILDREN
    # ========================================================================

    def _get_child(self, family_id: str, child_id: str) -> FamilyChild:
        child = self.repo.get_child(self.db, family_id, child_id)
        if not child:
            raise NotFound("Child not found", "child-not-found")
        return child

    async def add_child(self, family_id: str, data: ChildCreate, user: User) -> FamilyChild:
        child = FamilyChild(
            family_id=family_id, name=data.name, birth_date=data.birthDate, photo_url=data.photoUrl
        )
        self.db.add(child)
        self.db.commit()
        self.db.refresh(child)
        await emit_to_family(family_id, "child:created", ChildResponse.from_model(child).model_dump(), user.id)
        return child

    async def update_child(self, family_id: str, child_id: str, data: ChildUpdate, user: User) -> FamilyChild:
        child = self._get_child(family_id, child_id)
        if data.name is not None:
            child.name = data.name
        if "birthDate" in data.model_fields_set:
            child.birth_date = data.birthDate
        if "photoUrl" in data.model_fields_set:
            child.photo_url = data.photoUrl
        self.db.commit()
        self.db.refresh(child)
        await emit_to_family(family_id, "child:updated", ChildResponse.from_model(child).model_dump(), user.id)
        return child

    async def remove_child(self, family_id: str, child_id: str, user: User) -> None:
        child = self._get_child(family_id, child_id)
        self.db.delete(child)
        self.db.commit()
        await emit_to_family(family_id, "child:deleted", {"id": child_id}, user.id)
