from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .utils.helpers import generate_id


class User(Base):
    __tablename__ = "users"

    # Identity provider uid
    id = Column(String(128), primary_key=True, index=True)
    email = Column(String(255), index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    photo_url = Column(String(500), nullable=True)
    calendar_color = Column(String(20), nullable=True)
    active_family_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    memberships = relationship("FamilyMember", back_populates="user", cascade="all, delete-orphan")
    push_tokens = relationship("PushToken", back_populates="user", cascade="all, delete-orphan")


class Family(Base):
    __tablename__ = "families"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, default="My Family")
    photo_url = Column(String(500), nullable=True)
    owner_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    share_code = Column(String(6), unique=True, index=True, nullable=False)
    share_code_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    members = relationship(
        "FamilyMember",
        back_populates="family",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    children = relationship(
        "FamilyChild",
        back_populates="family",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FamilyChild.created_at",
    )
    invites = relationship(
        "FamilyInvite", back_populates="family", cascade="all, delete-orphan", passive_deletes=True
    )


class FamilyMember(Base):
    __tablename__ = "family_members"
    __table_args__ = (UniqueConstraint("family_id", "user_id", name="uq_family_member"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")  # owner, member
    joined_at = Column(DateTime, server_default=func.now())

    family = relationship("Family", back_populates="members")
    user = relationship("User", back_populates="memberships")


class FamilyInvite(Base):
    __tablename__ = "family_invites"
    __table_args__ = (UniqueConstraint("family_id", "email", name="uq_family_invite_email"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)  # normalized
    display_email = Column(String(255), nullable=False)
    invited_by_id = Column(String(128), nullable=False)
    invited_by_name = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending, accepted
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    family = relationship("Family", back_populates="invites")


class FamilyChild(Base):
    __tablename__ = "family_children"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    birth_date = Column(DateTime, nullable=True)
    photo_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    family = relationship("Family", back_populates="children")


class PushToken(Base):
    __tablename__ = "push_tokens"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(512), unique=True, nullable=False)
    platform = Column(String(20), nullable=True)  # ios, android, web
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="push_tokens")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(String(500), nullable=False)
    priority = Column(String(20), nullable=False, default="normal")
    data = Column(JSON, nullable=True)
    action_url = Column(String(500), nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)


class NotificationPreferences(Base):
    __tablename__ = "notification_preferences"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    swap_request_notifications = Column(Boolean, nullable=False, default=True)
    task_notifications = Column(Boolean, nullable=False, default=True)
    calendar_notifications = Column(Boolean, nullable=False, default=True)
    document_notifications = Column(Boolean, nullable=False, default=True)
    family_notifications = Column(Boolean, nullable=False, default=True)
    email_notifications = Column(Boolean, nullable=False, default=True)
    push_notifications = Column(Boolean, nullable=False, default=True)
    quiet_hours_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_start = Column(String(5), nullable=True)  # HH:mm
    quiet_hours_end = Column(String(5), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    language = Column(String(5), nullable=False, default="en")
    timezone = Column(String(64), nullable=False, default="UTC")
    date_format = Column(String(20), nullable=False, default="MM/DD/YYYY")
    time_format = Column(String(5), nullable=False, default="12h")
    week_start = Column(String(10), nullable=False, default="sunday")
    theme = Column(String(10), nullable=False, default="auto")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class FamilySettings(Base):
    __tablename__ = "family_settings"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), unique=True, nullable=False)
    default_currency = Column(String(3), nullable=False, default="USD")
    expense_split_default = Column(String(20), nullable=False, default="equal")
    parent1_percentage = Column(Integer, nullable=False, default=50)
    parent2_percentage = Column(Integer, nullable=False, default=50)
    allow_swap_requests = Column(Boolean, nullable=False, default=True)
    require_approval_for_swaps = Column(Boolean, nullable=False, default=True)
    reminder_default_time = Column(String(5), nullable=True)  # HH:mm
    enable_calendar_reminders = Column(Boolean, nullable=False, default=True)
    calendar_reminder_minutes = Column(Integer, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    child_id = Column(String(36), ForeignKey("family_children.id", ondelete="SET NULL"), nullable=True)
    file_url = Column(Text, nullable=False)
    storage_key = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=True)
    content_type = Column(String(100), nullable=True)
    size = Column(Integer, nullable=True)
    uploaded_by_id = Column(String(128), nullable=False)
    uploaded_by_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
