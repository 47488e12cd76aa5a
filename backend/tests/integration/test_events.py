"""
tests/integration/test_events.py — Event, participant and settled endpoints.

Endpoints covered:
  POST/GET          /events
  GET/PATCH/DELETE  /events/:id
  POST              /events/:id/participants
  DELETE            /events/:id/participants/:user_id
  POST/GET          /events/:id/settled
"""

from __future__ import annotations

from .conftest import (
    add_participant,
    auth_headers,
    make_event,
    make_split,
    make_user,
)


def _setup(app, client):
    alice = make_user(app, "alice")
    bob = make_user(app, "bob")
    event = make_event(client, alice["token"])
    resp = add_participant(client, alice["token"], event["id"], bob["id"])
    assert resp.status_code == 201
    return alice, bob, event


# ═══════════════════════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateAndReadEvents:

    def test_creator_is_first_participant(self, app, client):
        alice = make_user(app, "alice")
        event = make_event(client, alice["token"], name="  Ski Trip ", description="Alps")

        assert event["name"] == "Ski Trip"
        assert event["description"] == "Alps"
        assert event["created_by_user_id"] == alice["id"]
        assert event["is_settled"] is False
        assert [p["id"] for p in event["participants"]] == [alice["id"]]

    def test_missing_name(self, app, client):
        alice = make_user(app, "alice")
        resp = client.post("/api/v1/events", json={}, headers=auth_headers(alice["token"]))

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"
        assert resp.get_json()["error"]["field"] == "name"

    def test_list_only_own_events(self, app, client):
        alice = make_user(app, "alice")
        bob = make_user(app, "bob")
        make_event(client, alice["token"], name="Alice's")
        make_event(client, bob["token"], name="Bob's")

        resp = client.get("/api/v1/events", headers=auth_headers(alice["token"]))

        assert resp.status_code == 200
        assert [e["name"] for e in resp.get_json()["data"]] == ["Alice's"]

    def test_get_event_with_participants(self, app, client):
        alice, bob, event = _setup(app, client)
        resp = client.get(f"/api/v1/events/{event['id']}", headers=auth_headers(bob["token"]))

        assert resp.status_code == 200
        assert [p["name"] for p in resp.get_json()["data"]["participants"]] == ["alice", "bob"]

    def test_non_participant_gets_403(self, app, client):
        alice = make_user(app, "alice")
        carol = make_user(app, "carol")
        event = make_event(client, alice["token"])

        resp = client.get(f"/api/v1/events/{event['id']}", headers=auth_headers(carol["token"]))

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_event_gets_404(self, app, client):
        alice = make_user(app, "alice")
        resp = client.get("/api/v1/events/9999", headers=auth_headers(alice["token"]))

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "EVENT_NOT_FOUND"


class TestEditAndDeleteEvents:

    def test_creator_renames_event(self, app, client):
        alice, _, event = _setup(app, client)
        resp = client.patch(
            f"/api/v1/events/{event['id']}",
            json={"name": "Renamed"},
            headers=auth_headers(alice["token"]),
        )

        assert resp.status_code == 200
        assert resp.get_json()["data"]["name"] == "Renamed"
        assert resp.get_json()["data"]["updated_at"] is not None

    def test_participant_cannot_rename(self, app, client):
        _, bob, event = _setup(app, client)
        resp = client.patch(
            f"/api/v1/events/{event['id']}",
            json={"name": "Mine now"},
            headers=auth_headers(bob["token"]),
        )
        assert resp.status_code == 403

    def test_soft_deleted_event_disappears(self, app, client):
        alice, _, event = _setup(app, client)
        resp = client.delete(f"/api/v1/events/{event['id']}", headers=auth_headers(alice["token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deleted": True, "event_id": event["id"]}

        assert client.get(
            f"/api/v1/events/{event['id']}", headers=auth_headers(alice["token"])
        ).status_code == 404
        assert client.get(
            "/api/v1/events", headers=auth_headers(alice["token"])
        ).get_json()["data"] == []


# ═══════════════════════════════════════════════════════════════════════════
# Participants
# ═══════════════════════════════════════════════════════════════════════════

class TestParticipants:

    def test_add_participant(self, app, client):
        alice, bob, event = _setup(app, client)
        carol = make_user(app, "carol")

        resp = add_participant(client, bob["token"], event["id"], carol["id"])

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["user"]["id"] == carol["id"]
        assert data["resplit_count"] == 0

    def test_add_twice_conflicts(self, app, client):
        alice, bob, event = _setup(app, client)
        resp = add_participant(client, alice["token"], event["id"], bob["id"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_PARTICIPANT"

    def test_add_unknown_user(self, app, client):
        alice = make_user(app, "alice")
        event = make_event(client, alice["token"])
        resp = add_participant(client, alice["token"], event["id"], 9999)

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"

    def test_new_participant_joins_equal_splits_only(self, app, client):
        alice, bob, event = _setup(app, client)
        carol = make_user(app, "carol")
        equal = make_split(client, alice["token"], event["id"], alice["id"], "90.00")
        custom = make_split(
            client, alice["token"], event["id"], alice["id"], "90.00",
            split_mode="custom",
            participants=[
                {"user_id": alice["id"], "amount_owed": "45.00"},
                {"user_id": bob["id"], "amount_owed": "45.00"},
            ],
        )
        assert equal.status_code == 201 and custom.status_code == 201

        resp = add_participant(client, alice["token"], event["id"], carol["id"])
        assert resp.get_json()["data"]["resplit_count"] == 1

        equal_after = client.get(
            f"/api/v1/splits/{equal.get_json()['data']['id']}",
            headers=auth_headers(alice["token"]),
        ).get_json()["data"]
        custom_after = client.get(
            f"/api/v1/splits/{custom.get_json()['data']['id']}",
            headers=auth_headers(alice["token"]),
        ).get_json()["data"]

        assert [(p["user"]["id"], p["amount_owed"]) for p in equal_after["participants"]] == [
            (alice["id"], "30.00"),
            (bob["id"], "30.00"),
            (carol["id"], "30.00"),
        ]
        assert len(custom_after["participants"]) == 2

    def test_remove_participant_soft_deletes_their_splits(self, app, client):
        alice, bob, event = _setup(app, client)
        bobs_split = make_split(client, bob["token"], event["id"], bob["id"], "40.00")
        alices_split = make_split(client, alice["token"], event["id"], alice["id"], "20.00")

        resp = client.delete(
            f"/api/v1/events/{event['id']}/participants/{bob['id']}",
            headers=auth_headers(alice["token"]),
        )

        assert resp.status_code == 200
        assert resp.get_json()["data"]["deleted_split_count"] == 1

        splits = client.get(
            f"/api/v1/events/{event['id']}/splits", headers=auth_headers(alice["token"])
        ).get_json()["data"]
        assert [s["id"] for s in splits] == [alices_split.get_json()["data"]["id"]]
        assert client.get(
            f"/api/v1/splits/{bobs_split.get_json()['data']['id']}",
            headers=auth_headers(alice["token"]),
        ).status_code == 404

    def test_creator_cannot_be_removed(self, app, client):
        alice, _, event = _setup(app, client)
        resp = client.delete(
            f"/api/v1/events/{event['id']}/participants/{alice['id']}",
            headers=auth_headers(alice["token"]),
        )
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "CANNOT_REMOVE_CREATOR"

    def test_only_creator_removes(self, app, client):
        alice, bob, event = _setup(app, client)
        resp = client.delete(
            f"/api/v1/events/{event['id']}/participants/{bob['id']}",
            headers=auth_headers(bob["token"]),
        )
        assert resp.status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# Settled confirmations
# ═══════════════════════════════════════════════════════════════════════════

class TestSettled:

    def _toggle(self, client, user, event):
        resp = client.post(f"/api/v1/events/{event['id']}/settled", headers=auth_headers(user["token"]))
        assert resp.status_code == 200
        return resp.get_json()["data"]

    def test_settled_once_everyone_confirms(self, app, client):
        alice, bob, event = _setup(app, client)

        first = self._toggle(client, alice, event)
        assert first["confirmed"] is True
        assert first["is_settled"] is False

        second = self._toggle(client, bob, event)
        assert second["is_settled"] is True

        listing = client.get(
            f"/api/v1/events/{event['id']}/settled", headers=auth_headers(alice["token"])
        ).get_json()["data"]
        assert listing["is_settled"] is True
        assert {u["id"] for u in listing["confirmed"]} == {alice["id"], bob["id"]}
        assert listing["pending"] == []

    def test_withdrawing_a_confirmation_unsettles(self, app, client):
        alice, bob, event = _setup(app, client)
        self._toggle(client, alice, event)
        self._toggle(client, bob, event)

        again = self._toggle(client, bob, event)

        assert again["confirmed"] is False
        assert again["is_settled"] is False

    def test_new_participant_unsettles(self, app, client):
        alice, bob, event = _setup(app, client)
        self._toggle(client, alice, event)
        self._toggle(client, bob, event)

        carol = make_user(app, "carol")
        add_participant(client, alice["token"], event["id"], carol["id"])

        listing = client.get(
            f"/api/v1/events/{event['id']}/settled", headers=auth_headers(alice["token"])
        ).get_json()["data"]
        assert listing["is_settled"] is False
        assert [u["id"] for u in listing["pending"]] == [carol["id"]]
