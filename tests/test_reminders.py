from datetime import datetime, timedelta

from coparent.models import PushToken
from coparent.models_calendar import CalendarEvent, EventReminder, Task, TaskReminder
from coparent.services.reminder_service import (
    cleanup_old_reminders,
    dispatch_due_event_reminders,
    dispatch_due_reminders,
    dispatch_due_task_reminders,
    upsert_event_reminder,
    upsert_task_reminder,
)
from coparent.utils.dates import utcnow
from coparent.worker import cleanup_reminders_task, dispatch_reminders_task

NOW = datetime(2030, 3, 1, 12, 0)


def _event(db, family, creator, title="Dentist", start=None, minutes=30, targets=None):
    event = CalendarEvent(
        family_id=family.id,
        title=title,
        start_date=start or NOW + timedelta(hours=2),
        end_date=(start or NOW + timedelta(hours=2)) + timedelta(hours=1),
        type="medical",
        parent_id="both",
        target_uids=targets if targets is not None else ["uid-a", "uid-b"],
        reminder_minutes=minutes,
        created_by_id=creator.id,
    )
    db.add(event)
    db.flush()
    return event


def _task(db, family, creator, title="Sign form", due=None, minutes=60, status="pending"):
    task = Task(
        family_id=family.id,
        title=title,
        due_date=due or NOW + timedelta(days=1),
        status=status,
        reminder_minutes=minutes,
        created_by_id=creator.id,
    )
    db.add(task)
    db.flush()
    return task


def _due_event_reminder(db, event, send_at):
    reminder = EventReminder(
        event_id=event.id,
        family_id=event.family_id,
        title=event.title,
        start_date=event.start_date,
        reminder_minutes=event.reminder_minutes,
        send_at=send_at,
        target_uids=list(event.target_uids),
        sent=False,
    )
    db.add(reminder)
    db.commit()
    return reminder


class TestEventReminderUpsert:
    def test_stores_future_reminder(self, db, family, parent_a):
        event = _event(db, family, parent_a)

        reminder = upsert_event_reminder(db, event, now=NOW)
        db.commit()

        assert reminder.send_at == event.start_date - timedelta(minutes=30)
        assert reminder.sent is False
        assert reminder.target_uids == ["uid-a", "uid-b"]

    def test_discards_reminder_already_in_the_past(self, db, family, parent_a):
        event = _event(db, family, parent_a, start=NOW + timedelta(minutes=10), minutes=30)

        assert upsert_event_reminder(db, event, now=NOW) is None
        db.commit()
        assert db.query(EventReminder).count() == 0

    def test_reschedule_recomputes_and_resets_sent(self, db, family, parent_a):
        event = _event(db, family, parent_a)
        reminder = upsert_event_reminder(db, event, now=NOW)
        reminder.sent = True
        reminder.sent_at = NOW
        db.commit()

        event.start_date = NOW + timedelta(days=2)
        upsert_event_reminder(db, event, now=NOW)
        db.commit()

        stored = db.query(EventReminder).one()
        assert stored.send_at == NOW + timedelta(days=2) - timedelta(minutes=30)
        assert stored.sent is False
        assert stored.sent_at is None

    def test_clearing_offset_deletes_reminder(self, db, family, parent_a):
        event = _event(db, family, parent_a)
        upsert_event_reminder(db, event, now=NOW)
        db.commit()

        event.reminder_minutes = None
        upsert_event_reminder(db, event, now=NOW)
        db.commit()

        assert db.query(EventReminder).count() == 0

    def test_deleting_event_deletes_reminder(self, db, family, parent_a):
        event = _event(db, family, parent_a)
        upsert_event_reminder(db, event, now=NOW)
        db.commit()

        db.delete(event)
        db.commit()

        assert db.query(EventReminder).count() == 0


class TestTaskReminderUpsert:
    def test_finished_task_keeps_no_reminder(self, db, family, parent_a):
        task = _task(db, family, parent_a)
        upsert_task_reminder(db, task, ["uid-a"], now=NOW)
        db.commit()
        assert db.query(TaskReminder).count() == 1

        task.status = "completed"
        upsert_task_reminder(db, task, ["uid-a"], now=NOW)
        db.commit()
        assert db.query(TaskReminder).count() == 0

    def test_clearing_due_date_deletes_reminder(self, db, family, parent_a):
        task = _task(db, family, parent_a)
        upsert_task_reminder(db, task, ["uid-a"], now=NOW)
        db.commit()

        task.due_date = None
        upsert_task_reminder(db, task, ["uid-a"], now=NOW)
        db.commit()
        assert db.query(TaskReminder).count() == 0


class TestDispatch:
    def test_sends_due_reminders_and_marks_them(self, db, family, parent_a, push_tokens, push_gateway):
        event = _event(db, family, parent_a)
        _due_event_reminder(db, event, NOW - timedelta(minutes=1))

        assert dispatch_due_event_reminders(db, NOW) == 1

        stored = db.query(EventReminder).one()
        assert stored.sent is True
        assert stored.sent_at is not None
        assert push_gateway.sent[0]["title"] == "Reminder: Dentist"
        assert sorted(push_gateway.sent[0]["tokens"]) == ["token-a", "token-b"]
        assert push_gateway.sent[0]["data"]["eventId"] == event.id

    def test_future_reminders_are_left_alone(self, db, family, parent_a, push_tokens, push_gateway):
        event = _event(db, family, parent_a)
        _due_event_reminder(db, event, NOW + timedelta(minutes=5))

        assert dispatch_due_event_reminders(db, NOW) == 0
        assert push_gateway.sent == []

    def test_failed_push_stays_unsent_without_blocking_others(
        self, db, family, parent_a, push_tokens, push_gateway
    ):
        broken = _event(db, family, parent_a, title="Broken")
        working = _event(db, family, parent_a, title="Working")
        _due_event_reminder(db, broken, NOW - timedelta(minutes=2))
        _due_event_reminder(db, working, NOW - timedelta(minutes=1))
        push_gateway.fail_titles.add("Reminder: Broken")

        assert dispatch_due_event_reminders(db, NOW) == 1

        states = {r.title: r.sent for r in db.query(EventReminder).all()}
        assert states == {"Broken": False, "Working": True}

        push_gateway.fail_titles.clear()
        assert dispatch_due_event_reminders(db, NOW) == 1
        assert all(r.sent for r in db.query(EventReminder).all())

    def test_batch_size_limits_one_tick(self, db, family, parent_a, push_tokens):
        for i in range(3):
            event = _event(db, family, parent_a, title=f"Event {i}")
            _due_event_reminder(db, event, NOW - timedelta(minutes=i + 1))

        assert dispatch_due_event_reminders(db, NOW, batch_size=2) == 2
        assert db.query(EventReminder).filter(EventReminder.sent.is_(False)).count() == 1

    def test_completed_task_is_retired_silently(self, db, family, parent_a, push_tokens, push_gateway):
        task = _task(db, family, parent_a)
        db.add(
            TaskReminder(
                task_id=task.id,
                family_id=family.id,
                title=task.title,
                due_date=task.due_date,
                reminder_minutes=60,
                send_at=NOW - timedelta(minutes=1),
                target_uids=["uid-a"],
                sent=False,
            )
        )
        task.status = "completed"
        db.commit()

        assert dispatch_due_task_reminders(db, NOW) == 0

        assert db.query(TaskReminder).one().sent is True
        assert push_gateway.sent == []

    def test_tick_covers_both_tables(self, db, family, parent_a, push_tokens):
        event = _event(db, family, parent_a)
        _due_event_reminder(db, event, NOW - timedelta(minutes=1))
        task = _task(db, family, parent_a)
        db.add(
            TaskReminder(
                task_id=task.id,
                family_id=family.id,
                title=task.title,
                due_date=task.due_date,
                reminder_minutes=60,
                send_at=NOW - timedelta(minutes=1),
                target_uids=["uid-a"],
                sent=False,
            )
        )
        db.commit()

        assert dispatch_due_reminders(db, NOW) == {"events": 1, "tasks": 1}

    def test_reminder_without_tokens_is_still_marked_sent(self, db, family, parent_a, push_gateway):
        assert db.query(PushToken).count() == 0
        event = _event(db, family, parent_a)
        _due_event_reminder(db, event, NOW - timedelta(minutes=1))

        assert dispatch_due_event_reminders(db, NOW) == 1
        assert push_gateway.sent == []


class TestCleanup:
    def test_deletes_only_old_sent_reminders(self, db, family, parent_a):
        old = _event(db, family, parent_a, title="Old")
        recent = _event(db, family, parent_a, title="Recent")
        unsent = _event(db, family, parent_a, title="Unsent")
        for event, sent_at in (
            (old, NOW - timedelta(days=8)),
            (recent, NOW - timedelta(days=2)),
            (unsent, None),
        ):
            reminder = _due_event_reminder(db, event, NOW - timedelta(days=9))
            reminder.sent = sent_at is not None
            reminder.sent_at = sent_at
        db.commit()

        assert cleanup_old_reminders(db, NOW, retention_days=7) == 1

        assert sorted(r.title for r in db.query(EventReminder).all()) == ["Recent", "Unsent"]


class TestWorkerJobs:
    async def test_dispatch_job_uses_current_time(self, db, family, parent_a, push_tokens, push_gateway):
        event = _event(db, family, parent_a)
        _due_event_reminder(db, event, utcnow() - timedelta(minutes=1))

        assert await dispatch_reminders_task({}) == {"events": 1, "tasks": 0}
        assert push_gateway.sent[0]["title"] == "Reminder: Dentist"

    async def test_cleanup_job_reports_deleted_rows(self, db):
        assert await cleanup_reminders_task({}) == {"deleted": 0}
