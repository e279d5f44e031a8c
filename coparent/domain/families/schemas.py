"""Family domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...membership import parent_role_of
from ...models import Family, FamilyChild, FamilyInvite, FamilyMember
from ...shared.validators import validate_email
from ...utils.dates import to_naive_utc


class FamilyCreate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class FamilyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    photoUrl: Optional[str] = Field(None, max_length=500)


class InviteCoParent(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class JoinByCode(BaseModel):
    shareCode: str = Field(..., min_length=6, max_length=6)


class ChildCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    birthDate: Optional[datetime] = None
    photoUrl: Optional[str] = Field(None, max_length=500)

    @field_validator("birthDate")
    @classmethod
    def normalize_birth_date(cls, v):
        return to_naive_utc(v)


class ChildUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    birthDate: Optional[datetime] = None
    photoUrl: Optional[str] = Field(None, max_length=500)

    @field_validator("birthDate")
    @classmethod
    def normalize_birth_date(cls, v):
        return to_naive_utc(v)


class MemberResponse(BaseModel):
    userId: str
    role: str
    parentRole: Optional[str] = None
    fullName: Optional[str] = None
    email: Optional[str] = None
    photoUrl: Optional[str] = None
    calendarColor: Optional[str] = None
    joinedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, member: FamilyMember, member_ids: list[str]) -> "MemberResponse":
        user = member.user
        return cls(
            userId=member.user_id,
            role=member.role,
            parentRole=parent_role_of(member_ids, member.user_id),
            fullName=user.full_name if user else None,
            email=user.email if user else None,
            photoUrl=user.photo_url if user else None,
            calendarColor=user.calendar_color if user else None,
            joinedAt=member.joined_at,
        )


class ChildResponse(BaseModel):
    id: str
    familyId: str
    name: str
    birthDate: Optional[datetime] = None
    photoUrl: Optional[str] = None

    @classmethod
    def from_model(cls, child: FamilyChild) -> "ChildResponse":
        return cls(
            id=child.id,
            familyId=child.family_id,
            name=child.name,
            birthDate=child.birth_date,
            photoUrl=child.photo_url,
        )


class FamilyResponse(BaseModel):
    id: str
    name: str
    photoUrl: Optional[str] = None
    ownerId: str
    shareCode: str
    members: list[MemberResponse] = []
    children: list[ChildResponse] = []
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, family: Family) -> "FamilyResponse":
        member_ids = sorted(m.user_id for m in family.members)
        return cls(
            id=family.id,
            name=family.name,
            photoUrl=family.photo_url,
            ownerId=family.owner_id,
            shareCode=family.share_code,
            members=[MemberResponse.from_model(m, member_ids) for m in family.members],
            children=[ChildResponse.from_model(c) for c in family.children],
            createdAt=family.created_at,
        )


class InviteResponse(BaseModel):
    id: str
    familyId: str
    email: str
    status: str
    invitedById: str
    invitedByName: Optional[str] = None
    emailSent: bool = False
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, invite: FamilyInvite, email_sent: bool = False) -> "InviteResponse":
        return cls(
            id=invite.id,
            familyId=invite.family_id,
            email=invite.display_email,
            status=invite.status,
            invitedById=invite.invited_by_id,
            invitedByName=invite.invited_by_name,
            emailSent=email_sent,
            createdAt=invite.created_at,
        )
