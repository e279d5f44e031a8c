from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from coparent import auth
from coparent.main import app
from coparent.realtime import RealtimeHub


class TestErrorFormat:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_unknown_family_is_not_found(self, client, parent_a):
        response = client.get("/api/swap-requests/no-such-family")

        assert response.status_code == 404
        assert response.json() == {"error": "family-not-found", "message": "Family not found"}

    def test_validation_errors_list_fields(self, client, family):
        response = client.post(
            f"/api/swap-requests/{family.id}",
            json={"originalDate": "2030-05-10T00:00:00Z", "requestType": "swap"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation-error"
        assert isinstance(body["details"], list)
        assert body["details"]

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"] == "not-found"

    async def test_malformed_token_is_unauthorized(self, monkeypatch, db):
        monkeypatch.setattr(auth, "FIREBASE_PROJECT_ID", "demo-project")

        with pytest.raises(HTTPException) as exc:
            await auth.authenticate_token("not-a-jwt", db)
        assert exc.value.status_code == 401


class TestSwapHttpFlow:
    def test_counter_then_approve_over_http(self, client, db, family, parent_a, parent_b, hub):
        created = client.post(
            f"/api/swap-requests/{family.id}",
            json={
                "originalDate": "2030-05-10T00:00:00Z",
                "proposedDate": "2030-05-17T00:00:00Z",
                "requestType": "swap",
                "reason": "Conference",
            },
        )
        assert created.status_code == 201
        swap_id = created.json()["id"]

        client.act_as(parent_b.id)
        countered = client.post(
            f"/api/swap-requests/{family.id}/{swap_id}/counter",
            json={"proposedDate": "2030-05-24T00:00:00Z", "counterNote": "Later?"},
        )
        assert countered.json()["status"] == "countered"

        client.act_as(parent_a.id)
        accepted = client.post(f"/api/swap-requests/{family.id}/{swap_id}/accept-counter")
        assert accepted.json()["status"] == "final_pending"

        client.act_as(parent_b.id)
        approved = client.patch(
            f"/api/swap-requests/{family.id}/{swap_id}/status", json={"status": "approved"}
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

        events = client.get(f"/api/calendar/{family.id}/events", params={"type": "custody"}).json()
        assert [e["swapRequestId"] for e in events] == [swap_id, swap_id]

        again = client.patch(
            f"/api/swap-requests/{family.id}/{swap_id}/status", json={"status": "rejected"}
        )
        assert again.status_code == 400
        assert again.json()["error"] == "invalid-state"

    def test_wrong_actor_is_forbidden(self, client, family, parent_a):
        swap_id = client.post(
            f"/api/swap-requests/{family.id}",
            json={"originalDate": "2030-05-10T00:00:00Z", "requestType": "one-way"},
        ).json()["id"]

        response = client.patch(
            f"/api/swap-requests/{family.id}/{swap_id}/status", json={"status": "approved"}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "swap-approve-forbidden"

    def test_reject_counter_accepts_empty_body(self, client, family, parent_a, parent_b):
        swap_id = client.post(
            f"/api/swap-requests/{family.id}",
            json={
                "originalDate": "2030-05-10T00:00:00Z",
                "proposedDate": "2030-05-17T00:00:00Z",
                "requestType": "swap",
            },
        ).json()["id"]
        client.act_as(parent_b.id)
        client.post(
            f"/api/swap-requests/{family.id}/{swap_id}/counter",
            json={"proposedDate": "2030-05-24T00:00:00Z"},
        )

        client.act_as(parent_a.id)
        response = client.post(f"/api/swap-requests/{family.id}/{swap_id}/reject-counter")

        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert response.json()["proposedDate"].startswith("2030-05-17")

    def test_status_filter(self, client, family, parent_a):
        client.post(
            f"/api/swap-requests/{family.id}",
            json={"originalDate": "2030-05-10T00:00:00Z", "requestType": "one-way"},
        )

        assert len(client.get(f"/api/swap-requests/{family.id}", params={"status": "pending"}).json()) == 1
        assert client.get(f"/api/swap-requests/{family.id}", params={"status": "approved"}).json() == []


class TestRealtimeSocket:
    @pytest.fixture
    def socket_client(self, monkeypatch):
        verify = AsyncMock(return_value=SimpleNamespace(id="uid-a"))
        monkeypatch.setattr("coparent.routes.realtime.authenticate_token", verify)
        return TestClient(app), verify

    def test_member_can_join_family_room(self, socket_client, family):
        test_client, _ = socket_client

        with test_client.websocket_connect("/ws?token=good") as ws:
            ws.send_json({"action": "join", "familyId": family.id})
            assert ws.receive_json() == {"event": "joined", "data": {"familyId": family.id}}

            ws.send_json({"action": "leave", "familyId": family.id})
            assert ws.receive_json()["event"] == "left"

    def test_non_member_join_is_refused(self, socket_client, db, outsider):
        test_client, verify = socket_client
        verify.return_value = SimpleNamespace(id=outsider.id)

        with test_client.websocket_connect("/ws?token=good") as ws:
            ws.send_json({"action": "join", "familyId": "someone-elses"})
            message = ws.receive_json()

        assert message["event"] == "error"
        assert message["data"]["error"] == "not-family-member"

    def test_malformed_message(self, socket_client, parent_a):
        test_client, _ = socket_client

        with test_client.websocket_connect("/ws?token=good") as ws:
            ws.send_json({"action": "shout"})
            assert ws.receive_json()["data"]["error"] == "invalid-message"

    def test_non_json_frame_keeps_socket_open(self, socket_client, family):
        test_client, _ = socket_client

        with test_client.websocket_connect("/ws?token=good") as ws:
            ws.send_text("hello")
            assert ws.receive_json() == {"event": "error", "data": {"error": "invalid-message"}}

            ws.send_json({"action": "join", "familyId": family.id})
            assert ws.receive_json()["event"] == "joined"

    def test_rejected_token_closes_socket(self, socket_client):
        test_client, verify = socket_client
        verify.side_effect = HTTPException(status_code=401, detail="Invalid token format")

        with pytest.raises(WebSocketDisconnect) as exc:
            with test_client.websocket_connect("/ws?token=bad"):
                pass
        assert exc.value.code == 4401


class FakeSocket:
    def __init__(self, broken=False):
        self.messages = []
        self.broken = broken

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError("connection reset")
        self.messages.append(message)


class TestRealtimeHub:
    async def test_emit_skips_excluded_user(self):
        room_hub = RealtimeHub()
        mine, theirs = FakeSocket(), FakeSocket()
        room_hub.connect(mine, "uid-a")
        room_hub.connect(theirs, "uid-b")
        room_hub.join(mine, "fam")
        room_hub.join(theirs, "fam")

        delivered = await room_hub.emit_to_family("fam", "task:created", {"id": "t1"}, "uid-a")

        assert delivered == 1
        assert mine.messages == []
        assert theirs.messages == [{"event": "task:created", "data": {"id": "t1"}}]

    async def test_failed_socket_is_dropped(self):
        room_hub = RealtimeHub()
        good, bad = FakeSocket(), FakeSocket(broken=True)
        for socket, uid in ((good, "uid-a"), (bad, "uid-b")):
            room_hub.connect(socket, uid)
            room_hub.join(socket, "fam")

        assert await room_hub.emit_to_family("fam", "event:deleted", {"id": "e1"}) == 1
        assert room_hub.room_size("fam") == 1

    async def test_other_families_do_not_receive(self):
        room_hub = RealtimeHub()
        socket = FakeSocket()
        room_hub.connect(socket, "uid-a")
        room_hub.join(socket, "fam-1")

        assert await room_hub.emit_to_family("fam-2", "task:created", {}) == 0
        assert socket.messages == []

    def test_remove_user_drops_all_their_sockets(self):
        room_hub = RealtimeHub()
        phone, laptop, other = FakeSocket(), FakeSocket(), FakeSocket()
        for socket, uid in ((phone, "uid-a"), (laptop, "uid-a"), (other, "uid-b")):
            room_hub.connect(socket, uid)
            room_hub.join(socket, "fam")

        assert room_hub.remove_user_from_family("fam", "uid-a") == 2
        assert room_hub.room_size("fam") == 1
        assert room_hub.remove_user_from_family("fam", "uid-a") == 0
