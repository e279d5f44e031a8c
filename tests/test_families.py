import pytest

from coparent.domain.families.schemas import FamilyCreate
from coparent.domain.families.service import FamilyService
from coparent.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from coparent.models import Family, FamilyInvite, FamilyMember, Notification, User


class TestFamilyLifecycle:
    def test_create_makes_caller_owner(self, db, parent_a):
        family = FamilyService(db).create_family(FamilyCreate(name="Home"), parent_a)

        assert family.owner_id == parent_a.id
        assert len(family.share_code) == 6
        assert family.share_code.isdigit()
        assert [(m.user_id, m.role) for m in family.members] == [(parent_a.id, "owner")]
        db.refresh(parent_a)
        assert parent_a.active_family_id == family.id

    def test_regenerated_code_differs(self, db, solo_family):
        code = FamilyService(db).regenerate_share_code(solo_family.id)

        assert code != "111111"
        assert len(code) == 6

    def test_only_owner_can_delete(self, db, family, parent_b):
        member = db.query(FamilyMember).filter(FamilyMember.user_id == parent_b.id).one()

        with pytest.raises(Forbidden) as exc:
            FamilyService(db).delete_family(family.id, member)
        assert exc.value.code == "owner-only"

    def test_delete_clears_active_family(self, db, family, parent_a, parent_b):
        parent_b.active_family_id = family.id
        db.commit()
        owner = db.query(FamilyMember).filter(FamilyMember.user_id == parent_a.id).one()

        FamilyService(db).delete_family(family.id, owner)

        assert db.query(Family).count() == 0
        assert db.query(FamilyMember).count() == 0
        db.refresh(parent_b)
        assert parent_b.active_family_id is None


class TestInvites:
    async def test_invite_records_pending_invite_without_email_key(self, db, solo_family, parent_a):
        invite, email_sent = await FamilyService(db).invite_co_parent(
            solo_family.id, " Blake@Example.com ", parent_a
        )

        assert invite.email == "blake@example.com"
        assert invite.status == "pending"
        assert invite.invited_by_name == "Alex"
        assert email_sent is False

    async def test_full_family_cannot_invite(self, db, family, parent_a):
        with pytest.raises(ValidationFailed) as exc:
            await FamilyService(db).invite_co_parent(family.id, "new@example.com", parent_a)
        assert exc.value.code == "family-full"

    async def test_cannot_invite_self(self, db, solo_family, parent_a):
        with pytest.raises(ValidationFailed) as exc:
            await FamilyService(db).invite_co_parent(solo_family.id, "ALEX@example.com", parent_a)
        assert exc.value.code == "self-invite"

    async def test_duplicate_invite_conflicts(self, db, solo_family, parent_a):
        service = FamilyService(db)
        await service.invite_co_parent(solo_family.id, "blake@example.com", parent_a)

        with pytest.raises(Conflict) as exc:
            await service.invite_co_parent(solo_family.id, "Blake@example.com", parent_a)
        assert exc.value.code == "already-invited"

    async def test_accepting_invite_joins_family(self, db, solo_family, parent_a, parent_b, hub):
        service = FamilyService(db)
        await service.invite_co_parent(solo_family.id, "blake@example.com", parent_a)

        family = await service.accept_invite(parent_b)

        assert sorted(m.user_id for m in family.members) == [parent_a.id, parent_b.id]
        assert db.query(FamilyInvite).one().status == "accepted"
        assert "family:member:joined" in hub.names()
        notes = db.query(Notification).filter(Notification.user_id == parent_a.id).all()
        assert [n.type for n in notes] == ["family_member_joined"]

    async def test_accept_without_invite(self, db, parent_b):
        with pytest.raises(NotFound) as exc:
            await FamilyService(db).accept_invite(parent_b)
        assert exc.value.code == "no-pending-invite"


class TestJoinByCode:
    async def test_join_adds_member(self, db, solo_family, parent_b):
        family = await FamilyService(db).join_by_code("111111", parent_b)

        roles = {m.user_id: m.role for m in family.members}
        assert roles == {"uid-a": "owner", "uid-b": "member"}
        db.refresh(parent_b)
        assert parent_b.active_family_id == solo_family.id

    async def test_join_is_idempotent_for_members(self, db, family, parent_b):
        family = await FamilyService(db).join_by_code("123456", parent_b)
        assert len(family.members) == 2

    async def test_unknown_code(self, db, parent_b):
        with pytest.raises(NotFound) as exc:
            await FamilyService(db).join_by_code("999999", parent_b)
        assert exc.value.code == "invalid-share-code"

    async def test_third_parent_is_refused(self, db, family, outsider):
        with pytest.raises(ValidationFailed) as exc:
            await FamilyService(db).join_by_code("123456", outsider)
        assert exc.value.code == "family-full"


class TestLeave:
    async def test_owner_leaving_hands_over_ownership(self, db, family, parent_a, parent_b, hub):
        await FamilyService(db).leave_family(family.id, parent_a)

        db.expire_all()
        family = db.query(Family).one()
        assert family.owner_id == parent_b.id
        assert [(m.user_id, m.role) for m in family.members] == [(parent_b.id, "owner")]
        assert hub.names() == ["family:member:left"]
        assert hub.evicted == [(family.id, parent_a.id)]

    async def test_last_member_leaving_keeps_family(self, db, solo_family, parent_a):
        await FamilyService(db).leave_family(solo_family.id, parent_a)

        db.expire_all()
        assert db.query(Family).count() == 1
        assert db.query(FamilyMember).count() == 0


class TestFamilyRoutes:
    def test_create_and_fetch_with_parent_roles(self, client, db, parent_a, parent_b):
        created = client.post("/api/families", json={"name": "Home"})
        assert created.status_code == 201
        family_id = created.json()["id"]

        client.act_as(parent_b.id)
        joined = client.post("/api/families/join", json={"shareCode": created.json()["shareCode"]})
        assert joined.status_code == 200

        members = client.get(f"/api/families/{family_id}/members").json()
        assert {m["userId"]: m["parentRole"] for m in members} == {
            parent_a.id: "parent1",
            parent_b.id: "parent2",
        }

    def test_children_crud(self, client, family, parent_a):
        added = client.post(f"/api/families/{family.id}/children", json={"name": "Sam"})
        assert added.status_code == 201
        child_id = added.json()["id"]

        renamed = client.patch(f"/api/families/{family.id}/children/{child_id}", json={"name": "Sammy"})
        assert renamed.json()["name"] == "Sammy"

        assert client.delete(f"/api/families/{family.id}/children/{child_id}").status_code == 200
        missing = client.delete(f"/api/families/{family.id}/children/{child_id}")
        assert missing.status_code == 404
        assert missing.json()["error"] == "child-not-found"

    def test_invite_response_reports_email_not_sent(self, client, solo_family, parent_a):
        response = client.post(f"/api/families/{solo_family.id}/invite", json={"email": "co@example.com"})

        assert response.status_code == 201
        assert response.json()["emailSent"] is False
        assert response.json()["email"] == "co@example.com"

    def test_bad_invite_email_is_rejected(self, client, solo_family, parent_a):
        response = client.post(f"/api/families/{solo_family.id}/invite", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation-error"

    def test_unknown_family_is_not_found(self, client, parent_a):
        response = client.get("/api/families/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "family-not-found"


def test_user_rows_are_untouched_by_family_delete(db, family, parent_a):
    owner = db.query(FamilyMember).filter(FamilyMember.user_id == parent_a.id).one()
    FamilyService(db).delete_family(family.id, owner)

    assert db.query(User).count() == 2
