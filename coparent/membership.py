"""Family membership checks and parent-role resolution"""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from . import config
from .auth import get_current_user
from .database import get_db
from .exceptions import Forbidden, NotFound
from .models import Family, FamilyMember, User

logger = logging.getLogger(__name__)


def get_sorted_member_ids(db: Session, family_id: str) -> list[str]:
    """Distinct member user ids in ascending order; index 0 is parent1, index 1 is parent2"""
    rows = db.query(FamilyMember.user_id).filter(FamilyMember.family_id == family_id).all()
    return sorted({row[0] for row in rows})


def resolve_target_uids(member_ids: list[str], parent_id: Optional[str]) -> list[str]:
    """Users addressed by a parent1/parent2/both assignment; a missing parent falls back to everyone"""
    if parent_id == "parent1" and len(member_ids) >= 1:
        return member_ids[:1]
    if parent_id == "parent2" and len(member_ids) >= 2:
        return member_ids[1:2]
    return list(member_ids)


def parent_role_of(member_ids: list[str], user_id: str) -> Optional[str]:
    if user_id not in member_ids:
        return None
    return "parent1" if member_ids.index(user_id) == 0 else "parent2"


def is_family_member(db: Session, family_id: str, user_id: str) -> bool:
    return (
        db.query(FamilyMember)
        .filter(FamilyMember.family_id == family_id, FamilyMember.user_id == user_id)
        .first()
        is not None
    )


def require_family_member(db: Session, family_id: str, user: User) -> FamilyMember:
    """Return the caller's membership row or raise.

    With FAMILY_AUTO_ENROLL enabled a caller with a free seat is enrolled on
    first access instead of being rejected.
    """
    member = (
        db.query(FamilyMember)
        .filter(FamilyMember.family_id == family_id, FamilyMember.user_id == user.id)
        .first()
    )
    if member:
        return member

    family = db.query(Family).filter(Family.id == family_id).first()
    if not family:
        raise NotFound("Family not found", "family-not-found")

    if config.FAMILY_AUTO_ENROLL:
        count = db.query(FamilyMember).filter(FamilyMember.family_id == family_id).count()
        if count < config.MAX_FAMILY_MEMBERS:
            logger.warning(f"⚠️ Auto-enrolling user {user.id} into family {family_id}")
            member = FamilyMember(family_id=family_id, user_id=user.id, role="member")
            db.add(member)
            db.commit()
            db.refresh(member)
            return member

    logger.warning(f"⚠️ User {user.id} denied access to family {family_id}")
    raise Forbidden("You are not a member of this family", "not-family-member")


def get_family_member(
    family_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FamilyMember:
    """Dependency for family-scoped routes with a ``family_id`` path parameter"""
    return require_family_member(db, family_id, current_user)
