from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .utils.helpers import generate_id


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    # custody, pickup, dropoff, school, activity, medical, holiday, vacation, other
    type = Column(String(20), nullable=False, default="other")
    parent_id = Column(String(10), nullable=False, default="both")  # parent1, parent2, both
    target_uids = Column(JSON, nullable=False, default=list)
    color = Column(String(20), nullable=True)
    location = Column(String(200), nullable=True)
    reminder_minutes = Column(Integer, nullable=True)
    is_all_day = Column(Boolean, nullable=False, default=False)
    child_id = Column(String(36), ForeignKey("family_children.id", ondelete="SET NULL"), nullable=True)
    # Set on events derived from an approved swap request
    swap_request_id = Column(
        String(36), ForeignKey("swap_requests.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_by_id = Column(String(128), nullable=False)
    created_by_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    reminder = relationship(
        "EventReminder",
        uselist=False,
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class EventReminder(Base):
    __tablename__ = "event_reminders"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(
        String(36), ForeignKey("calendar_events.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    family_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    start_date = Column(DateTime, nullable=False)
    reminder_minutes = Column(Integer, nullable=False)
    send_at = Column(DateTime, nullable=False, index=True)
    target_uids = Column(JSON, nullable=False, default=list)
    sent = Column(Boolean, nullable=False, default=False, index=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    event = relationship("CalendarEvent", back_populates="reminder")


class CustodySchedule(Base):
    __tablename__ = "custody_schedules"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(
        String(36), ForeignKey("families.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    name = Column(String(100), nullable=True)
    pattern = Column(String(20), nullable=False)  # weekly, biweekly, custom, week_on_week_off
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    parent1_days = Column(JSON, nullable=False, default=list)  # 0 = Sunday
    parent2_days = Column(JSON, nullable=False, default=list)
    biweekly_alt_parent1_days = Column(JSON, nullable=False, default=list)
    biweekly_alt_parent2_days = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    pending_approval = relationship(
        "CustodyApproval",
        uselist=False,
        back_populates="schedule",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}


class CustodyApproval(Base):
    """Proposed replacement pattern awaiting the other parent's consent"""

    __tablename__ = "custody_approvals"

    id = Column(String(36), primary_key=True, default=generate_id)
    schedule_id = Column(
        String(36), ForeignKey("custody_schedules.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    name = Column(String(100), nullable=True)
    pattern = Column(String(20), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    parent1_days = Column(JSON, nullable=False, default=list)
    parent2_days = Column(JSON, nullable=False, default=list)
    biweekly_alt_parent1_days = Column(JSON, nullable=False, default=list)
    biweekly_alt_parent2_days = Column(JSON, nullable=False, default=list)
    requested_by_id = Column(String(128), nullable=False)
    requested_by_name = Column(String(255), nullable=True)
    requested_at = Column(DateTime, nullable=False)

    schedule = relationship("CustodySchedule", back_populates="pending_approval")


class SwapRequest(Base):
    __tablename__ = "swap_requests"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_id = Column(String(128), nullable=False)
    requester_name = Column(String(255), nullable=True)
    recipient_id = Column(String(128), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    original_date = Column(DateTime, nullable=False)
    proposed_date = Column(DateTime, nullable=True)
    request_type = Column(String(10), nullable=False, default="swap")  # swap, one-way
    reason = Column(Text, nullable=True)
    # pending, countered, final_pending, approved, rejected, cancelled
    status = Column(String(20), nullable=False, default="pending", index=True)

    previous_proposed_date = Column(DateTime, nullable=True)
    counter_note = Column(Text, nullable=True)
    countered_by_id = Column(String(128), nullable=True)
    countered_at = Column(DateTime, nullable=True)

    requester_confirmed_at = Column(DateTime, nullable=True)
    counter_response_note = Column(Text, nullable=True)
    counter_responded_at = Column(DateTime, nullable=True)

    response_note = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_id)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    priority = Column(String(10), nullable=False, default="medium")  # low, medium, high, urgent
    status = Column(String(20), nullable=False, default="pending")  # pending, in_progress, completed, cancelled
    assigned_to = Column(String(10), nullable=False, default="both")  # parent1, parent2, both
    category = Column(String(20), nullable=False, default="other")
    child_id = Column(String(36), ForeignKey("family_children.id", ondelete="SET NULL"), nullable=True)
    reminder_minutes = Column(Integer, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completed_by_id = Column(String(128), nullable=True)
    created_by_id = Column(String(128), nullable=False)
    created_by_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    reminder = relationship(
        "TaskReminder",
        uselist=False,
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TaskReminder(Base):
    __tablename__ = "task_reminders"

    id = Column(String(36), primary_key=True, default=generate_id)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), unique=True, nullable=False)
    family_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    due_date = Column(DateTime, nullable=False)
    reminder_minutes = Column(Integer, nullable=False)
    send_at = Column(DateTime, nullable=False, index=True)
    target_uids = Column(JSON, nullable=False, default=list)
    sent = Column(Boolean, nullable=False, default=False, index=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    task = relationship("Task", back_populates="reminder")
