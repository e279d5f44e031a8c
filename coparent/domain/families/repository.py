"""Family repository - Database operations for families, members, invites and children"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Family, FamilyChild, FamilyInvite, FamilyMember, User


class FamilyRepository:
    """Repository for family database operations"""

    @staticmethod
    def get_family(db: Session, family_id: str) -> Optional[Family]:
        return (
            db.query(Family)
            .options(joinedload(Family.members).joinedload(FamilyMember.user), joinedload(Family.children))
            .filter(Family.id == family_id)
            .first()
        )

    @staticmethod
    def get_family_by_share_code(db: Session, share_code: str) -> Optional[Family]:
        return db.query(Family).filter(Family.share_code == share_code).first()

    @staticmethod
    def share_code_exists(db: Session, share_code: str) -> bool:
        return db.query(Family.id).filter(Family.share_code == share_code).first() is not None

    @staticmethod
    def get_members(db: Session, family_id: str) -> list[FamilyMember]:
        return (
            db.query(FamilyMember)
            .options(joinedload(FamilyMember.user))
            .filter(FamilyMember.family_id == family_id)
            .order_by(FamilyMember.user_id)
            .all()
        )

    @staticmethod
    def get_member(db: Session, family_id: str, user_id: str) -> Optional[FamilyMember]:
        return (
            db.query(FamilyMember)
            .filter(FamilyMember.family_id == family_id, FamilyMember.user_id == user_id)
            .first()
        )

    @staticmethod
    def count_members(db: Session, family_id: str) -> int:
        return db.query(FamilyMember).filter(FamilyMember.family_id == family_id).count()

    @staticmethod
    def get_invite(db: Session, family_id: str, email: str) -> Optional[FamilyInvite]:
        return (
            db.query(FamilyInvite)
            .filter(FamilyInvite.family_id == family_id, FamilyInvite.email == email)
            .first()
        )

    @staticmethod
    def get_pending_invite_for_email(db: Session, email: str) -> Optional[FamilyInvite]:
        return (
            db.query(FamilyInvite)
            .filter(FamilyInvite.email == email, FamilyInvite.status == "pending")
            .order_by(FamilyInvite.created_at)
            .first()
        )

    @staticmethod
    def get_child(db: Session, family_id: str, child_id: str) -> Optional[FamilyChild]:
        return (
            db.query(FamilyChild)
            .filter(FamilyChild.id == child_id, FamilyChild.family_id == family_id)
            .first()
        )

    @staticmethod
    def clear_active_family(db: Session, family_id: str) -> None:
        db.query(User).filter(User.active_family_id == family_id).update(
            {User.active_family_id: None}, synchronize_session=False
        )
