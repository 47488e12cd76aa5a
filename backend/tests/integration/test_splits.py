"""
tests/integration/test_splits.py — Split endpoints end to end.

Covers:
  - equal split: defaults to every participant, remainder cents
  - custom split: shares must add up to the amount
  - validation codes surfaced by the error handler
  - PATCH recomputes shares
  - DELETE soft-deletes and is creator-gated
"""

from __future__ import annotations

from .conftest import (
    add_participant,
    auth_headers,
    make_event,
    make_split,
    make_user,
)


def _trio(app, client):
    alice = make_user(app, "alice")
    bob = make_user(app, "bob")
    carol = make_user(app, "carol")
    event = make_event(client, alice["token"])
    add_participant(client, alice["token"], event["id"], bob["id"])
    add_participant(client, alice["token"], event["id"], carol["id"])
    return alice, bob, carol, event


def _shares(split: dict) -> dict:
    return {p["user"]["id"]: p["amount_owed"] for p in split["participants"]}


# ═══════════════════════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateEqualSplit:

    def test_defaults_to_every_participant(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        resp = make_split(client, alice["token"], event["id"], alice["id"], "90.00", title="Dinner")

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["warnings"] == []
        split = body["data"]
        assert split["title"] == "Dinner"
        assert split["amount"] == "90.00"
        assert split["split_mode"] == "equal"
        assert split["paid_by"]["id"] == alice["id"]
        assert split["created_by_user_id"] == alice["id"]
        assert _shares(split) == {alice["id"]: "30.00", bob["id"]: "30.00", carol["id"]: "30.00"}

    def test_remainder_cents_go_to_first_participants(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        resp = make_split(
            client, alice["token"], event["id"], alice["id"], "100.00",
            participant_ids=[bob["id"], carol["id"], alice["id"]],
        )

        assert resp.status_code == 201
        assert [
            (p["user"]["id"], p["amount_owed"]) for p in resp.get_json()["data"]["participants"]
        ] == [
            (bob["id"], "33.34"),
            (carol["id"], "33.33"),
            (alice["id"], "33.33"),
        ]

    def test_subset_of_participants(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        resp = make_split(
            client, bob["token"], event["id"], bob["id"], "50.00",
            participant_ids=[alice["id"], bob["id"]],
        )

        assert resp.status_code == 201
        assert _shares(resp.get_json()["data"]) == {alice["id"]: "25.00", bob["id"]: "25.00"}


class TestCreateCustomSplit:

    def test_custom_shares_kept_as_given(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        resp = make_split(
            client, alice["token"], event["id"], alice["id"], "100.00",
            split_mode="custom",
            participants=[
                {"user_id": alice["id"], "amount_owed": "20.00"},
                {"user_id": bob["id"], "amount_owed": "50.00"},
                {"user_id": carol["id"], "amount_owed": "30.00"},
            ],
        )

        assert resp.status_code == 201
        assert _shares(resp.get_json()["data"]) == {
            alice["id"]: "20.00",
            bob["id"]: "50.00",
            carol["id"]: "30.00",
        }

    def test_sum_mismatch_rejected(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        resp = make_split(
            client, alice["token"], event["id"], alice["id"], "100.00",
            split_mode="custom",
            participants=[
                {"user_id": alice["id"], "amount_owed": "20.00"},
                {"user_id": bob["id"], "amount_owed": "50.00"},
            ],
        )

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "SPLIT_SUM_MISMATCH"

        listing = client.get(f"/api/v1/events/{event['id']}/splits", headers=auth_headers(alice["token"]))
        assert listing.get_json()["data"] == []


class TestCreateValidation:

    def test_three_decimal_places(self, app, client):
        alice, _, _, event = _trio(app, client)
        resp = make_split(client, alice["token"], event["id"], alice["id"], "10.123")

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_AMOUNT_PRECISION"
        assert resp.get_json()["error"]["field"] == "amount"

    def test_zero_amount(self, app, client):
        alice, _, _, event = _trio(app, client)
        resp = make_split(client, alice["token"], event["id"], alice["id"], "0")

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_AMOUNT"

    def test_payer_outside_event(self, app, client):
        alice, _, _, event = _trio(app, client)
        dave = make_user(app, "dave")
        resp = make_split(client, alice["token"], event["id"], dave["id"], "10.00")

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "PAYER_NOT_PARTICIPANT"

    def test_share_holder_outside_event(self, app, client):
        alice, _, _, event = _trio(app, client)
        dave = make_user(app, "dave")
        resp = make_split(
            client, alice["token"], event["id"], alice["id"], "10.00",
            participant_ids=[alice["id"], dave["id"]],
        )

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "SPLIT_USER_NOT_PARTICIPANT"

    def test_outsider_cannot_create(self, app, client):
        alice, _, _, event = _trio(app, client)
        dave = make_user(app, "dave")
        resp = make_split(client, dave["token"], event["id"], alice["id"], "10.00")

        assert resp.status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════════════════════

class TestUpdateSplit:

    def _patch(self, client, token, split_id, payload):
        return client.patch(f"/api/v1/splits/{split_id}", json=payload, headers=auth_headers(token))

    def test_new_amount_re_divides_equal_split(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "30.00").get_json()["data"]

        resp = self._patch(client, alice["token"], split["id"], {"amount": "60.00"})

        assert resp.status_code == 200
        updated = resp.get_json()["data"]
        assert updated["amount"] == "60.00"
        assert _shares(updated) == {alice["id"]: "20.00", bob["id"]: "20.00", carol["id"]: "20.00"}
        assert updated["updated_at"] is not None

    def test_switch_to_custom(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "30.00").get_json()["data"]

        resp = self._patch(client, alice["token"], split["id"], {
            "split_mode": "custom",
            "participants": [
                {"user_id": bob["id"], "amount_owed": "30.00"},
            ],
        })

        assert resp.status_code == 200
        assert resp.get_json()["data"]["split_mode"] == "custom"
        assert _shares(resp.get_json()["data"]) == {bob["id"]: "30.00"}

    def test_custom_amount_change_needs_participants(self, app, client):
        alice, bob, _, event = _trio(app, client)
        split = make_split(
            client, alice["token"], event["id"], alice["id"], "40.00",
            split_mode="custom",
            participants=[{"user_id": bob["id"], "amount_owed": "40.00"}],
        ).get_json()["data"]

        resp = self._patch(client, alice["token"], split["id"], {"amount": "50.00"})

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "PARTICIPANTS_REQUIRED"

    def test_title_only_keeps_shares(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "30.00").get_json()["data"]

        resp = self._patch(client, alice["token"], split["id"], {"title": "Lunch"})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["title"] == "Lunch"
        assert _shares(resp.get_json()["data"]) == _shares(split)

    def test_amount_edit_after_a_holder_was_removed(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "90.00").get_json()["data"]
        removed = client.delete(
            f"/api/v1/events/{event['id']}/participants/{bob['id']}",
            headers=auth_headers(alice["token"]),
        )
        assert removed.status_code == 200

        resp = self._patch(client, alice["token"], split["id"], {"amount": "120.00"})

        assert resp.status_code == 200
        assert _shares(resp.get_json()["data"]) == {
            alice["id"]: "40.00",
            bob["id"]: "40.00",
            carol["id"]: "40.00",
        }

    def test_removed_user_cannot_be_named_again(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "90.00").get_json()["data"]
        client.delete(
            f"/api/v1/events/{event['id']}/participants/{bob['id']}",
            headers=auth_headers(alice["token"]),
        )

        resp = self._patch(client, alice["token"], split["id"], {
            "participant_ids": [alice["id"], bob["id"]],
        })

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "SPLIT_USER_NOT_PARTICIPANT"

    def test_bystander_cannot_edit(self, app, client):
        alice, bob, _, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "30.00").get_json()["data"]

        resp = self._patch(client, bob["token"], split["id"], {"title": "Mine"})

        assert resp.status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════════════════════

class TestDeleteSplit:

    def test_soft_delete_hides_split(self, app, client):
        alice, _, _, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "30.00").get_json()["data"]

        resp = client.delete(f"/api/v1/splits/{split['id']}", headers=auth_headers(alice["token"]))

        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deleted": True, "split_id": split["id"]}
        assert client.get(
            f"/api/v1/splits/{split['id']}", headers=auth_headers(alice["token"])
        ).status_code == 404

    def test_second_delete_is_404(self, app, client):
        alice, _, _, event = _trio(app, client)
        split = make_split(client, alice["token"], event["id"], alice["id"], "30.00").get_json()["data"]
        client.delete(f"/api/v1/splits/{split['id']}", headers=auth_headers(alice["token"]))

        resp = client.delete(f"/api/v1/splits/{split['id']}", headers=auth_headers(alice["token"]))

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "SPLIT_NOT_FOUND"

    def test_event_creator_may_delete_others_split(self, app, client):
        alice, bob, _, event = _trio(app, client)
        split = make_split(client, bob["token"], event["id"], bob["id"], "30.00").get_json()["data"]

        resp = client.delete(f"/api/v1/splits/{split['id']}", headers=auth_headers(alice["token"]))

        assert resp.status_code == 200

    def test_bystander_cannot_delete(self, app, client):
        alice, bob, carol, event = _trio(app, client)
        split = make_split(client, bob["token"], event["id"], bob["id"], "30.00").get_json()["data"]

        resp = client.delete(f"/api/v1/splits/{split['id']}", headers=auth_headers(carol["token"]))

        assert resp.status_code == 403
