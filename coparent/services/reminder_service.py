"""
Event and task reminders.

Reminders are stored one row per event/task with ``send_at`` derived from the
anchor time (event start or task due date) minus the offset in minutes. The
sweep functions here are plain callables; the arq worker triggers them.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ..config import REMINDER_BATCH_SIZE, REMINDER_RETENTION_DAYS
from ..models_calendar import CalendarEvent, EventReminder, Task, TaskReminder
from ..utils.dates import utcnow
from .push_service import deliver_push

logger = logging.getLogger(__name__)

TERMINAL_TASK_STATUSES = ("completed", "cancelled")


def compute_send_at(anchor: datetime, reminder_minutes: int) -> datetime:
    return anchor - timedelta(minutes=reminder_minutes)


def format_reminder_time(value: Optional[datetime]) -> str:
    if value is None:
        return "No date"
    return value.strftime("%a, %b %d at %H:%M UTC")


def upsert_event_reminder(
    db: Session, event: CalendarEvent, now: Optional[datetime] = None
) -> Optional[EventReminder]:
    """
    Create, refresh or remove the reminder for an event.

    No reminder is kept when the offset is cleared or its send time has
    already passed. An existing row is reset to unsent with the recomputed time.
    Caller commits.
    """
    now = now or utcnow()
    existing = db.query(EventReminder).filter(EventReminder.event_id == event.id).first()

    minutes = event.reminder_minutes
    if minutes is None or minutes <= 0 or event.start_date is None:
        if existing:
            db.delete(existing)
        return None

    send_at = compute_send_at(event.start_date, minutes)
    if send_at <= now:
        if existing:
            db.delete(existing)
        return None

    reminder = existing or EventReminder(event_id=event.id, family_id=event.family_id)
    reminder.title = event.title
    reminder.start_date = event.start_date
    reminder.reminder_minutes = minutes
    reminder.send_at = send_at
    reminder.target_uids = list(event.target_uids or [])
    reminder.sent = False
    reminder.sent_at = None
    if existing is None:
        db.add(reminder)
    return reminder


def upsert_task_reminder(
    db: Session, task: Task, target_uids: list[str], now: Optional[datetime] = None
) -> Optional[TaskReminder]:
    """Same rules as event reminders, anchored on the due date; finished tasks keep no reminder"""
    now = now or utcnow()
    existing = db.query(TaskReminder).filter(TaskReminder.task_id == task.id).first()

    minutes = task.reminder_minutes
    if (
        minutes is None
        or minutes <= 0
        or task.due_date is None
        or task.status in TERMINAL_TASK_STATUSES
    ):
        if existing:
            db.delete(existing)
        return None

    send_at = compute_send_at(task.due_date, minutes)
    if send_at <= now:
        if existing:
            db.delete(existing)
        return None

    reminder = existing or TaskReminder(task_id=task.id, family_id=task.family_id)
    reminder.title = task.title
    reminder.due_date = task.due_date
    reminder.reminder_minutes = minutes
    reminder.send_at = send_at
    reminder.target_uids = list(target_uids)
    reminder.sent = False
    reminder.sent_at = None
    if existing is None:
        db.add(reminder)
    return reminder


def _mark_sent(db: Session, reminder) -> None:
    reminder.sent = True
    reminder.sent_at = utcnow()
    db.commit()


def dispatch_due_event_reminders(
    db: Session, now: Optional[datetime] = None, batch_size: int = REMINDER_BATCH_SIZE
) -> int:
    """Push due event reminders. A reminder whose push fails stays unsent for the next sweep."""
    now = now or utcnow()
    due = (
        db.query(EventReminder)
        .filter(EventReminder.sent.is_(False), EventReminder.send_at <= now)
        .order_by(EventReminder.send_at)
        .limit(batch_size)
        .all()
    )
    if not due:
        return 0

    logger.info(f"⏰ Found {len(due)} due event reminders")
    sent = 0
    for reminder in due:
        try:
            deliver_push(
                db,
                list(reminder.target_uids or []),
                f"Reminder: {reminder.title}",
                format_reminder_time(reminder.start_date),
                {
                    "type": "calendar-event-reminder",
                    "familyId": reminder.family_id,
                    "eventId": reminder.event_id,
                },
            )
            _mark_sent(db, reminder)
            sent += 1
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to send event reminder {reminder.id}: {str(e)}")
    return sent


def dispatch_due_task_reminders(
    db: Session, now: Optional[datetime] = None, batch_size: int = REMINDER_BATCH_SIZE
) -> int:
    """Push due task reminders; reminders of finished tasks are retired without sending"""
    now = now or utcnow()
    due = (
        db.query(TaskReminder)
        .options(joinedload(TaskReminder.task))
        .filter(TaskReminder.sent.is_(False), TaskReminder.send_at <= now)
        .order_by(TaskReminder.send_at)
        .limit(batch_size)
        .all()
    )
    if not due:
        return 0

    logger.info(f"⏰ Found {len(due)} due task reminders")
    sent = 0
    for reminder in due:
        try:
            if reminder.task is not None and reminder.task.status in TERMINAL_TASK_STATUSES:
                _mark_sent(db, reminder)
                continue

            deliver_push(
                db,
                list(reminder.target_uids or []),
                f"Task reminder: {reminder.title}",
                format_reminder_time(reminder.due_date),
                {
                    "type": "task-reminder",
                    "familyId": reminder.family_id,
                    "taskId": reminder.task_id,
                },
            )
            _mark_sent(db, reminder)
            sent += 1
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to send task reminder {reminder.id}: {str(e)}")
    return sent


def dispatch_due_reminders(db: Session, now: Optional[datetime] = None) -> dict:
    """One sweep tick over both reminder tables"""
    now = now or utcnow()
    return {
        "events": dispatch_due_event_reminders(db, now),
        "tasks": dispatch_due_task_reminders(db, now),
    }


def cleanup_old_reminders(
    db: Session, now: Optional[datetime] = None, retention_days: int = REMINDER_RETENTION_DAYS
) -> int:
    """Delete reminders sent more than ``retention_days`` ago from both tables"""
    cutoff = (now or utcnow()) - timedelta(days=retention_days)

    events = (
        db.query(EventReminder)
        .filter(EventReminder.sent.is_(True), EventReminder.sent_at < cutoff)
        .delete(synchronize_session=False)
    )
    tasks = (
        db.query(TaskReminder)
        .filter(TaskReminder.sent.is_(True), TaskReminder.sent_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()

    total = events + tasks
    if total:
        logger.info(f"🧹 Cleaned up {total} old reminders ({events} events, {tasks} tasks)")
    return total
