from datetime import timedelta

import pytest

from app.core import rbac
from app.core.clock import utcnow
from app.models.campaign import PartyFund
from app.models.campaign_invite import CampaignInvite
from app.services.notifications import get_dispatcher
from tests.conftest import FailingDispatcher

API = "/api/v1"


def _create_campaign(client, headers, name="Curse of Strahd", game_system="dnd-5e"):
    resp = client.post(f"{API}/campaigns", json={"name": name, "game_system": game_system}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _invite(client, headers, campaign_id, email, role="player"):
    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites", json={"email": email, "role": role}, headers=headers
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["invite_link"].split("invite=", 1)[1]


def _join(client, owner_headers, campaign_id, email, auth_headers, role="player"):
    """Invite `email` and accept as that user; returns their headers."""
    headers = auth_headers(email)
    token = _invite(client, owner_headers, campaign_id, email, role)
    resp = client.post(f"{API}/invites/{token}/accept", headers=headers)
    assert resp.status_code == 200, resp.text
    return headers


def _member_id(client, headers, campaign_id, email):
    rows = client.get(f"{API}/campaigns/{campaign_id}/members", headers=headers).json()
    return next(r["id"] for r in rows if r["email"] == email)


def _assert_error(resp, status, typ):
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["type"] == typ
    assert body["error"]["status"] == status
    assert body["error"]["message"]
    assert body["error"]["trace_id"] == resp.headers["X-Request-ID"]


@pytest.fixture
def owner_headers(auth_headers):
    return auth_headers("gm@example.com", "Game Master")


# ---------------------------------------------------------------------------
# Health and auth
# ---------------------------------------------------------------------------


def test_healthz_ok(client):
    resp = client.get("/api/healthz")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_readyz_pings_database(client):
    resp = client.get("/api/readyz")
    assert resp.status_code == 200
    assert resp.json()["db"] == "up"
    assert resp.json()["email"] == "disabled"


def test_register_login_me(client, auth_headers):
    headers = auth_headers("Alice@Example.com", "Alice")
    me = client.get(f"{API}/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"
    assert me.json()["display_name"] == "Alice"


def test_register_twice_is_invalid_request(client, auth_headers):
    auth_headers("alice@example.com")
    resp = client.post(f"{API}/register", json={"email": "alice@example.com", "password": "another-password"})
    _assert_error(resp, 400, "invalid_request")


def test_bad_password_is_rejected(client, auth_headers):
    auth_headers("alice@example.com")
    resp = client.post(f"{API}/login", data={"username": "alice@example.com", "password": "nope-nope"})
    _assert_error(resp, 401, "http_error")


def test_campaigns_require_a_session(client):
    resp = client.get(f"{API}/campaigns")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------


def test_create_campaign_lists_caller_as_owner(client, db, owner_headers):
    campaign_id = _create_campaign(client, owner_headers, game_system="pathfinder-2e")

    rows = client.get(f"{API}/campaigns", headers=owner_headers).json()
    assert len(rows) == 1
    assert rows[0]["role"] == "owner"
    assert rows[0]["campaign"]["id"] == campaign_id
    assert rows[0]["campaign"]["game_system"] == "pathfinder-2e"

    members = client.get(f"{API}/campaigns/{campaign_id}/members", headers=owner_headers).json()
    assert [(m["email"], m["role"]) for m in members] == [("gm@example.com", "owner")]
    assert db.query(PartyFund).filter(PartyFund.campaign_id == campaign_id).count() == 1


def test_list_puts_owned_campaigns_first(client, owner_headers, auth_headers):
    bob = auth_headers("bob@example.com")
    gm_campaign = _create_campaign(client, owner_headers, name="Alpha")
    _join(client, owner_headers, gm_campaign, "bob@example.com", auth_headers)
    _create_campaign(client, bob, name="Zeta")

    rows = client.get(f"{API}/campaigns", headers=bob).json()
    assert [(r["campaign"]["name"], r["role"]) for r in rows] == [("Zeta", "owner"), ("Alpha", "contributor")]


def test_non_member_sees_not_found(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    stranger = auth_headers("stranger@example.com")

    _assert_error(client.get(f"{API}/campaigns/{campaign_id}", headers=stranger), 404, "not_found")
    _assert_error(client.get(f"{API}/campaigns/{campaign_id}/members", headers=stranger), 404, "not_found")


def test_rename_by_contributor_and_viewer(client, owner_headers, auth_headers, monkeypatch):
    campaign_id = _create_campaign(client, owner_headers)
    carol = _join(client, owner_headers, campaign_id, "carol@example.com", auth_headers, role="dm")
    dave = _join(client, owner_headers, campaign_id, "dave@example.com", auth_headers, role="viewer")

    resp = client.patch(f"{API}/campaigns/{campaign_id}", json={"name": "Barovia"}, headers=carol)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Barovia"

    _assert_error(
        client.patch(f"{API}/campaigns/{campaign_id}", json={"name": "Mine"}, headers=dave),
        403,
        "unauthorized",
    )

    monkeypatch.setattr(rbac.settings, "CONTRIBUTORS_CAN_RENAME", False)
    _assert_error(
        client.patch(f"{API}/campaigns/{campaign_id}", json={"name": "Again"}, headers=carol),
        403,
        "unauthorized",
    )


def test_delete_campaign_needs_owner_and_exact_name(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers, name="Storm King's Thunder")
    carol = _join(client, owner_headers, campaign_id, "carol@example.com", auth_headers)
    url = f"{API}/campaigns/{campaign_id}"

    _assert_error(
        client.request("DELETE", url, json={"confirm_name": "Storm King's Thunder"}, headers=carol),
        403,
        "unauthorized",
    )
    _assert_error(
        client.request("DELETE", url, json={"confirm_name": "storm king's thunder"}, headers=owner_headers),
        400,
        "invalid_request",
    )

    resp = client.request("DELETE", url, json={"confirm_name": "Storm King's Thunder"}, headers=owner_headers)
    assert resp.status_code == 204
    _assert_error(client.get(url, headers=owner_headers), 404, "not_found")
    assert client.get(f"{API}/campaigns", headers=carol).json() == []


def test_leave_campaign(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    dave = _join(client, owner_headers, campaign_id, "dave@example.com", auth_headers, role="viewer")

    _assert_error(client.post(f"{API}/campaigns/{campaign_id}/leave", headers=owner_headers), 403, "unauthorized")

    assert client.post(f"{API}/campaigns/{campaign_id}/leave", headers=dave).status_code == 204
    _assert_error(client.get(f"{API}/campaigns/{campaign_id}", headers=dave), 404, "not_found")


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


def test_role_ceiling(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    carol = _join(client, owner_headers, campaign_id, "carol@example.com", auth_headers)
    _join(client, owner_headers, campaign_id, "dave@example.com", auth_headers, role="viewer")
    dave_id = _member_id(client, owner_headers, campaign_id, "dave@example.com")
    url = f"{API}/campaigns/{campaign_id}/members/{dave_id}"

    # contributor is refused
    _assert_error(client.patch(url, json={"role": "contributor"}, headers=carol), 403, "unauthorized")
    _assert_error(client.delete(url, headers=carol), 403, "unauthorized")

    # owner succeeds
    resp = client.patch(url, json={"role": "contributor"}, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "contributor"

    resp = client.post(f"{url}/toggle-role", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "viewer"

    assert client.delete(url, headers=owner_headers).status_code == 204
    emails = [m["email"] for m in client.get(f"{API}/campaigns/{campaign_id}/members", headers=owner_headers).json()]
    assert "dave@example.com" not in emails


def test_owner_cannot_be_demoted_or_removed(client, owner_headers):
    campaign_id = _create_campaign(client, owner_headers)
    owner_id = _member_id(client, owner_headers, campaign_id, "gm@example.com")
    url = f"{API}/campaigns/{campaign_id}/members/{owner_id}"

    _assert_error(client.patch(url, json={"role": "viewer"}, headers=owner_headers), 403, "unauthorized")
    _assert_error(client.delete(url, headers=owner_headers), 403, "unauthorized")


def test_owner_role_cannot_be_requested(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    _join(client, owner_headers, campaign_id, "carol@example.com", auth_headers)
    carol_id = _member_id(client, owner_headers, campaign_id, "carol@example.com")

    resp = client.patch(
        f"{API}/campaigns/{campaign_id}/members/{carol_id}", json={"role": "owner"}, headers=owner_headers
    )
    _assert_error(resp, 422, "validation_error")


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------


def test_invite_accept_scenario(client, dispatcher, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers, name="Out of the Abyss")
    bob = auth_headers("bob@example.com")

    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites",
        json={"email": "bob@example.com", "role": "contributor"},
        headers=owner_headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["email_sent"] is True
    assert body["invite"]["status"] == "pending"
    assert body["invite"]["role"] == "contributor"
    token = body["invite_link"].split("invite=", 1)[1]
    assert dispatcher.sent[0].invite_link == body["invite_link"]

    preview = client.get(f"{API}/invites/{token}", headers=bob)
    assert preview.status_code == 200
    assert preview.json()["campaign_name"] == "Out of the Abyss"
    assert preview.json()["game_system"] == "dnd-5e"
    assert preview.json()["role"] == "contributor"
    assert preview.json()["inviter_name"] == "Game Master"

    accepted = client.post(f"{API}/invites/{token}/accept", headers=bob)
    assert accepted.status_code == 200
    assert accepted.json() == {
        "status": "accepted",
        "campaign_id": campaign_id,
        "role": "contributor",
        "clear_invite_param": True,
    }

    _assert_error(client.post(f"{API}/invites/{token}/accept", headers=bob), 409, "invite_already_resolved")

    rows = client.get(f"{API}/campaigns", headers=bob).json()
    assert [(r["campaign"]["id"], r["role"]) for r in rows] == [(campaign_id, "contributor")]


def test_invite_decline_scenario(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    bob = auth_headers("bob@example.com")
    token = _invite(client, owner_headers, campaign_id, "bob@example.com")

    resp = client.post(f"{API}/invites/{token}/decline", headers=bob)
    assert resp.status_code == 200
    assert resp.json()["status"] == "declined"
    assert resp.json()["role"] is None

    _assert_error(client.post(f"{API}/invites/{token}/accept", headers=bob), 409, "invite_already_resolved")
    assert client.get(f"{API}/campaigns", headers=bob).json() == []


def test_invite_for_someone_else_is_not_found(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    token = _invite(client, owner_headers, campaign_id, "bob@example.com")
    mallory = auth_headers("mallory@example.com")

    _assert_error(client.get(f"{API}/invites/{token}", headers=mallory), 404, "not_found")
    _assert_error(client.post(f"{API}/invites/{token}/accept", headers=mallory), 404, "not_found")
    _assert_error(client.get(f"{API}/invites/not-a-real-token", headers=mallory), 404, "not_found")


def test_duplicate_pending_invite(client, owner_headers):
    campaign_id = _create_campaign(client, owner_headers)
    _invite(client, owner_headers, campaign_id, "bob@example.com")
    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites",
        json={"email": "Bob@example.com", "role": "viewer"},
        headers=owner_headers,
    )
    _assert_error(resp, 409, "duplicate_invite")


def test_inviting_a_member_is_already_member(client, owner_headers):
    campaign_id = _create_campaign(client, owner_headers)
    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites", json={"email": "gm@example.com"}, headers=owner_headers
    )
    _assert_error(resp, 409, "already_member")


def test_invite_cannot_offer_owner(client, owner_headers):
    campaign_id = _create_campaign(client, owner_headers)
    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites",
        json={"email": "bob@example.com", "role": "owner"},
        headers=owner_headers,
    )
    _assert_error(resp, 400, "invalid_request")


def test_viewer_cannot_invite_but_contributor_can(client, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    carol = _join(client, owner_headers, campaign_id, "carol@example.com", auth_headers)
    dave = _join(client, owner_headers, campaign_id, "dave@example.com", auth_headers, role="viewer")

    resp = client.post(f"{API}/campaigns/{campaign_id}/invites", json={"email": "erin@example.com"}, headers=dave)
    _assert_error(resp, 403, "unauthorized")

    resp = client.post(f"{API}/campaigns/{campaign_id}/invites", json={"email": "erin@example.com"}, headers=carol)
    assert resp.status_code == 201


def test_email_failure_still_returns_link(client, owner_headers):
    failing = FailingDispatcher()
    client.app.dependency_overrides[get_dispatcher] = lambda: failing
    campaign_id = _create_campaign(client, owner_headers)

    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites", json={"email": "bob@example.com"}, headers=owner_headers
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["email_sent"] is False
    assert body["email_error"]
    assert "?invite=" in body["invite_link"]
    assert failing.attempts == 1


def test_expired_invite_is_gone(client, db, owner_headers, auth_headers):
    campaign_id = _create_campaign(client, owner_headers)
    bob = auth_headers("bob@example.com")
    token = _invite(client, owner_headers, campaign_id, "bob@example.com")

    db.query(CampaignInvite).filter(CampaignInvite.invite_token == token).update(
        {CampaignInvite.expires_at: utcnow() - timedelta(minutes=1)}, synchronize_session=False
    )
    db.commit()

    _assert_error(client.get(f"{API}/invites/{token}", headers=bob), 410, "invite_expired")
    _assert_error(client.post(f"{API}/invites/{token}/accept", headers=bob), 410, "invite_expired")
    _assert_error(client.post(f"{API}/invites/{token}/decline", headers=bob), 410, "invite_expired")

    # an expired invite does not hold the slot
    token2 = _invite(client, owner_headers, campaign_id, "bob@example.com")
    assert token2 != token


def test_crashing_dispatcher_still_returns_link(client, owner_headers, auth_headers):
    class BrokenDispatcher:
        def send(self, email):
            raise UnicodeEncodeError("ascii", email.to, 0, 1, "ordinal not in range(128)")

    client.app.dependency_overrides[get_dispatcher] = lambda: BrokenDispatcher()
    campaign_id = _create_campaign(client, owner_headers)
    bob = auth_headers("bob@example.com")

    resp = client.post(
        f"{API}/campaigns/{campaign_id}/invites", json={"email": "bob@example.com"}, headers=owner_headers
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["email_sent"] is False
    token = body["invite_link"].split("invite=", 1)[1]

    # the returned link is usable
    assert client.post(f"{API}/invites/{token}/accept", headers=bob).status_code == 200


def test_blank_campaign_name_is_rejected(client, owner_headers):
    resp = client.post(f"{API}/campaigns", json={"name": "   "}, headers=owner_headers)
    _assert_error(resp, 400, "invalid_request")
    assert client.get(f"{API}/campaigns", headers=owner_headers).json() == []


def test_out_schemas_read_orm_rows(db, make_user, make_campaign):
    from app.schemas.campaign import CampaignOut
    from app.schemas.user import UserOut

    owner = make_user("gm@example.com")
    campaign = make_campaign(owner, name="Rime of the Frostmaiden")
    assert CampaignOut.model_validate(campaign).name == "Rime of the Frostmaiden"
    assert UserOut.model_validate(owner).email == "gm@example.com"
