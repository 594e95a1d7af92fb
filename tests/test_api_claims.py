from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from main import create_app
from utils.auth import create_access_token, mock_users
from utils.clock import utcnow

MEMBER = "member@safetynet.dao"
VOTER = "voter@safetynet.dao"
VALIDATOR = "validator@safetynet.dao"
ADMIN = "admin@safetynet.dao"
GUEST = "guest@safetynet.dao"

CLAIM = {
    "category": "MEDICAL",
    "requested_amount": 30000,
    "description": "Emergency room visit after a cycling accident",
    "evidence_attachments": [
        {
            "url": "https://files.safetynet.dao/er-invoice.pdf",
            "filename": "er-invoice.pdf",
            "content_type": "application/pdf",
            "size_bytes": 245000,
        }
    ],
}


def _headers(email):
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}


def _user_id(email):
    return mock_users[email]["user_id"]


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def enroll(client):
    def _enroll(email, days=90, status="ACTIVE", tier="BASIC"):
        response = client.put(
            f"/memberships/{_user_id(email)}",
            json={
                "status": status,
                "tier": tier,
                "joined_at": (utcnow() - timedelta(days=days)).isoformat(),
            },
            headers=_headers(ADMIN),
        )
        assert response.status_code == 200
        return response.json()

    return _enroll


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_login_and_me(client):
    response = client.post("/auth/login", json={"email": MEMBER, "password": "secret"})
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["role"] == "MEMBER"

    me = client.get(
        "/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert me.json()["email"] == MEMBER


def test_login_with_wrong_password(client):
    response = client.post("/auth/login", json={"email": MEMBER, "password": "nope"})

    assert response.status_code == 401


def test_claims_require_authentication(client):
    response = client.get("/claims/")

    assert response.status_code in (401, 403)


def test_only_admin_updates_memberships(client):
    response = client.put(
        f"/memberships/{_user_id(MEMBER)}",
        json={"status": "ACTIVE"},
        headers=_headers(VALIDATOR),
    )

    assert response.status_code == 403
    assert response.json()["error"]["type"] == "AUTHORIZATION_ERROR"


def test_my_membership(client, enroll):
    assert client.get("/memberships/me", headers=_headers(MEMBER)).status_code == 404

    enroll(MEMBER, tier="PREMIUM")
    response = client.get("/memberships/me", headers=_headers(MEMBER))

    assert response.status_code == 200
    assert response.json()["tier"] == "PREMIUM"


def test_new_member_is_told_how_long_to_wait(client, enroll):
    enroll(MEMBER, days=45)

    eligibility = client.get("/claims/eligibility", headers=_headers(MEMBER)).json()
    assert eligibility["is_eligible"] is False
    assert eligibility["remaining_days"] == 15

    response = client.post("/claims/", json=CLAIM, headers=_headers(MEMBER))
    assert response.status_code == 403
    error = response.json()["error"]
    assert error["type"] == "ELIGIBILITY_ERROR"
    assert error["details"]["remaining_days"] == 15


def test_invalid_body_is_a_validation_error(client, enroll):
    enroll(MEMBER)
    bad = dict(CLAIM, description="too short")

    response = client.post("/claims/", json=bad, headers=_headers(MEMBER))

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "VALIDATION_ERROR"


def test_disallowed_evidence_type(client, enroll):
    enroll(MEMBER)
    bad = dict(CLAIM)
    bad["evidence_attachments"] = [
        dict(CLAIM["evidence_attachments"][0], content_type="application/zip")
    ]

    response = client.post("/claims/", json=bad, headers=_headers(MEMBER))

    assert response.status_code == 400


def test_submit_review_and_pay(client, enroll):
    enroll(MEMBER)

    response = client.post("/claims/", json=CLAIM, headers=_headers(MEMBER))
    assert response.status_code == 201
    submitted = response.json()
    assert submitted["status"] == "SUBMITTED"
    assert submitted["risk_score"] == 30
    claim_id = submitted["claim_id"]

    response = client.post(
        f"/claims/{claim_id}/review",
        json={"decision": "APPROVE", "notes": "Invoice and ER report check out"},
        headers=_headers(VALIDATOR),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert response.json()["approved_amount"] == 30000

    response = client.post(
        f"/claims/{claim_id}/review",
        json={"decision": "APPROVE", "notes": "Invoice and ER report check out"},
        headers=_headers(VALIDATOR),
    )
    assert response.status_code == 409
    assert response.json()["error"]["type"] == "INVALID_STATE_TRANSITION"

    response = client.post(
        f"/claims/{claim_id}/mark-paid",
        json={"settlement_ref": ""},
        headers=_headers(ADMIN),
    )
    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"field": "settlement_ref"}

    response = client.post(
        f"/claims/{claim_id}/mark-paid",
        json={"settlement_ref": "0x9f2c4e"},
        headers=_headers(ADMIN),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "PAID"

    trail = client.get(f"/claims/{claim_id}/audit", headers=_headers(VALIDATOR)).json()
    assert [e["action"] for e in trail] == [
        "CLAIM_SUBMITTED",
        "CLAIM_APPROVED",
        "CLAIM_PAID",
    ]

    assert (
        client.get(f"/claims/{claim_id}/audit", headers=_headers(MEMBER)).status_code
        == 403
    )


def test_community_vote(client, enroll):
    enroll(MEMBER)
    enroll(VOTER)
    claim_id = client.post("/claims/", json=CLAIM, headers=_headers(MEMBER)).json()[
        "claim_id"
    ]

    response = client.post(
        f"/claims/{claim_id}/open-voting", headers=_headers(VALIDATOR)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "VOTING"

    response = client.post(
        f"/claims/{claim_id}/votes",
        json={"choice": "FOR", "reasoning": "Documented and reasonable"},
        headers=_headers(VOTER),
    )
    assert response.status_code == 201
    assert response.json()["for_votes"] == 1

    duplicate = client.post(
        f"/claims/{claim_id}/votes", json={"choice": "AGAINST"}, headers=_headers(VOTER)
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["type"] == "DUPLICATE_VOTE"

    own = client.post(
        f"/claims/{claim_id}/votes", json={"choice": "FOR"}, headers=_headers(MEMBER)
    )
    assert own.status_code == 403

    votes = client.get(f"/claims/{claim_id}/votes", headers=_headers(VOTER)).json()
    assert votes["tally"]["total_votes"] == 1
    assert len(votes["votes"]) == 1
    assert votes["votes"][0]["voter_id"] == _user_id(VOTER)

    submitter_view = client.get(
        f"/claims/{claim_id}/votes", headers=_headers(MEMBER)
    ).json()
    assert submitter_view["tally"]["for_votes"] == 1
    assert submitter_view["votes"] == []

    response = client.post(
        f"/claims/{claim_id}/finalize-voting", headers=_headers(VALIDATOR)
    )
    assert response.status_code == 409


def test_member_withdraws_and_lists_claims(client, enroll):
    enroll(MEMBER)
    claim_id = client.post("/claims/", json=CLAIM, headers=_headers(MEMBER)).json()[
        "claim_id"
    ]

    response = client.post(
        f"/claims/{claim_id}/withdraw",
        json={"notes": "Covered by travel insurance"},
        headers=_headers(MEMBER),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    listing = client.get(
        "/claims/", params={"status": "CANCELLED"}, headers=_headers(MEMBER)
    ).json()
    assert listing["total"] == 1
    assert listing["claims"][0]["id"] == claim_id


def test_guest_cannot_submit(client):
    response = client.post("/claims/", json=CLAIM, headers=_headers(GUEST))

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Forbidden"


def test_unknown_claim(client):
    response = client.get(
        "/claims/5d2f0c8e-0000-4000-8000-000000000000", headers=_headers(VALIDATOR)
    )

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "NOT_FOUND"


def test_claim_discussion(client, enroll):
    enroll(MEMBER)
    enroll(VOTER)
    claim_id = client.post("/claims/", json=CLAIM, headers=_headers(MEMBER)).json()[
        "claim_id"
    ]

    response = client.post(
        f"/claims/{claim_id}/comments",
        json={"content": "Which hospital treated you?"},
        headers=_headers(VOTER),
    )
    assert response.status_code == 201
    assert response.json()["author_id"] == _user_id(VOTER)

    blank = client.post(
        f"/claims/{claim_id}/comments", json={"content": ""}, headers=_headers(VOTER)
    )
    assert blank.status_code == 400

    no_membership = client.post(
        f"/claims/{claim_id}/comments",
        json={"content": "Drive-by comment"},
        headers=_headers(VALIDATOR),
    )
    assert no_membership.status_code == 403

    missing = client.get(
        "/claims/5d2f0c8e-0000-4000-8000-000000000000/comments",
        headers=_headers(VOTER),
    )
    assert missing.status_code == 404

    thread = client.get(f"/claims/{claim_id}/comments", headers=_headers(MEMBER))
    assert thread.status_code == 200
    assert [c["content"] for c in thread.json()] == ["Which hospital treated you?"]
