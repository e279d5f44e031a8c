from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from coparent.database import Base
from coparent.domain.calendar.custody_service import CustodyService
from coparent.domain.calendar.schemas import CustodyScheduleInput
from coparent.exceptions import Forbidden, NotFound
from coparent.models import Notification
from coparent.models_calendar import CalendarEvent, CustodyApproval, CustodySchedule


def _pattern(**overrides) -> CustodyScheduleInput:
    values = {
        "name": "School year",
        "pattern": "weekly",
        "startDate": datetime(2030, 1, 1),
        "parent1Days": [1, 2, 3],
        "parent2Days": [4, 5, 6, 0],
    }
    values.update(overrides)
    return CustodyScheduleInput(**values)


class TestDirectSave:
    async def test_save_creates_active_schedule(self, db, family, parent_a, hub):
        schedule = await CustodyService(db).save_schedule(family.id, _pattern(), parent_a)

        assert schedule.is_active is True
        assert schedule.parent2_days == [0, 4, 5, 6]
        assert schedule.pending_approval is None
        assert hub.names() == ["custody:updated"]

    async def test_save_overwrites_existing_pattern(self, db, family, parent_a):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(), parent_a)
        schedule = await service.save_schedule(family.id, _pattern(pattern="biweekly"), parent_a)

        assert schedule.pattern == "biweekly"
        assert schedule.version == 2


class TestApprovalWorkflow:
    async def test_first_request_stays_inactive_until_approved(self, db, family, parent_a, parent_b):
        service = CustodyService(db)
        schedule = await service.save_schedule(family.id, _pattern(requestApproval=True), parent_a)

        assert schedule.is_active is False
        assert schedule.pending_approval.requested_by_id == parent_a.id
        notes = db.query(Notification).filter(Notification.user_id == parent_b.id).all()
        assert [n.type for n in notes] == ["custody_approval_request"]

        schedule = await service.respond(family.id, True, parent_b)

        assert schedule.is_active is True
        assert schedule.pending_approval is None
        assert db.query(CustodyApproval).count() == 0

    async def test_approval_copies_every_pattern_field(self, db, family, parent_a, parent_b):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(), parent_a)
        proposal = _pattern(
            name="Summer",
            pattern="biweekly",
            startDate=datetime(2030, 6, 1),
            endDate=datetime(2030, 8, 31),
            parent1Days=[0, 1],
            parent2Days=[2, 3],
            biweeklyAltParent1Days=[4],
            biweeklyAltParent2Days=[5, 6],
            requestApproval=True,
        )
        await service.save_schedule(family.id, proposal, parent_b)

        schedule = await service.respond(family.id, True, parent_a)

        assert schedule.name == "Summer"
        assert schedule.pattern == "biweekly"
        assert schedule.start_date == datetime(2030, 6, 1)
        assert schedule.end_date == datetime(2030, 8, 31)
        assert schedule.parent1_days == [0, 1]
        assert schedule.biweekly_alt_parent1_days == [4]
        assert schedule.biweekly_alt_parent2_days == [5, 6]

    async def test_rejection_keeps_live_pattern(self, db, family, parent_a, parent_b):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(), parent_a)
        await service.save_schedule(family.id, _pattern(pattern="custom", requestApproval=True), parent_b)

        schedule = await service.respond(family.id, False, parent_a)

        assert schedule.pattern == "weekly"
        assert schedule.pending_approval is None
        types = [n.type for n in db.query(Notification).filter(Notification.user_id == parent_b.id)]
        assert "custody_rejected" in types

    async def test_requester_cannot_approve_own_change(self, db, family, parent_a):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(requestApproval=True), parent_a)

        with pytest.raises(Forbidden) as exc:
            await service.respond(family.id, True, parent_a)
        assert exc.value.code == "requester-cannot-approve"

    async def test_respond_without_pending_change(self, db, family, parent_b):
        with pytest.raises(NotFound) as exc:
            await CustodyService(db).respond(family.id, True, parent_b)
        assert exc.value.code == "no-pending-approval"

    async def test_only_requester_can_cancel(self, db, family, parent_a, parent_b):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(), parent_a)
        await service.save_schedule(family.id, _pattern(pattern="custom", requestApproval=True), parent_a)

        with pytest.raises(Forbidden) as exc:
            await service.cancel(family.id, parent_b)
        assert exc.value.code == "only-requester-can-cancel"

        schedule = await service.cancel(family.id, parent_a)
        assert schedule.pending_approval is None
        assert schedule.pattern == "weekly"

    async def test_new_request_replaces_pending_change(self, db, family, parent_a):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(requestApproval=True), parent_a)
        await service.save_schedule(family.id, _pattern(pattern="custom", requestApproval=True), parent_a)

        assert db.query(CustodyApproval).count() == 1
        assert db.query(CustodyApproval).one().pattern == "custom"


class TestDelete:
    async def test_delete_removes_schedule_and_custody_events(self, db, family, parent_a, hub):
        service = CustodyService(db)
        await service.save_schedule(family.id, _pattern(), parent_a)
        for event_type in ("custody", "school"):
            db.add(
                CalendarEvent(
                    family_id=family.id,
                    title=event_type,
                    start_date=datetime(2030, 1, 2),
                    end_date=datetime(2030, 1, 2, 1),
                    type=event_type,
                    created_by_id=parent_a.id,
                )
            )
        db.commit()

        await service.delete_schedule(family.id)

        assert service.get_schedule(family.id) is None
        assert [e.type for e in db.query(CalendarEvent).all()] == ["school"]
        assert hub.names()[-1] == "custody:deleted"


def test_concurrent_custody_responses_conflict(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'custody-locking.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as setup:
        schedule = CustodySchedule(
            family_id="family-1",
            pattern="weekly",
            start_date=datetime(2030, 1, 1),
            parent1_days=[1, 2, 3],
            parent2_days=[4, 5, 6, 0],
        )
        schedule.pending_approval = CustodyApproval(
            pattern="custom",
            start_date=datetime(2030, 2, 1),
            parent1_days=[1, 3, 5],
            parent2_days=[2, 4, 6, 0],
            requested_by_id="uid-a",
            requested_at=datetime(2030, 1, 15),
        )
        setup.add(schedule)
        setup.commit()
        schedule_id = schedule.id

    first, second = Session(), Session()
    try:
        responses = []
        for session in (first, second):
            copy = session.get(CustodySchedule, schedule_id)
            assert copy.pending_approval is not None
            responses.append(copy)

        for copy in responses:
            copy.pattern = copy.pending_approval.pattern
            copy.parent1_days = copy.pending_approval.parent1_days
            copy.pending_approval = None

        first.commit()
        with pytest.raises(StaleDataError):
            second.commit()
    finally:
        first.close()
        second.close()
        engine.dispose()
