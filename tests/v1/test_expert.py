# tests/v1/test_expert.py
"""Tests for expert investigation requests."""

from fastapi import status

from crypto_clarity.models import ExpertRequest, PremiumRequest
from tests.conftest import ADMIN_EMAIL, UNKNOWN_WALLET, VITALIK

SCENARIO = "Someone claiming to be support asked for my seed phrase"


def _submit(client, **extra):
    return client.post("/api/request-expert", json={"scenario": SCENARIO, **extra})


def test_submit_request(client, db_session) -> None:
    response = _submit(
        client,
        suspiciousAddress=VITALIK,
        userAddress=UNKNOWN_WALLET,
        email="victim@example.com",
        notes="Happened on Telegram",
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"] == "Expert investigation request submitted successfully"
    assert data["isAdmin"] is False

    stored = db_session.get(ExpertRequest, data["id"])
    assert stored.status == "pending"
    assert stored.address == VITALIK
    assert [item["role"] for item in stored.address_data] == ["suspicious", "user"]
    assert db_session.query(PremiumRequest).one().feature_requested == "expert_investigation"


def test_anonymous_submission_records_no_interest(client, db_session) -> None:
    assert _submit(client).status_code == status.HTTP_201_CREATED
    assert db_session.query(PremiumRequest).count() == 0


def test_submission_requires_scenario(client) -> None:
    response = client.post("/api/request-expert", json={"suspiciousAddress": VITALIK})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["field"] == "scenario"


def test_admin_lists_requests_newest_first(client) -> None:
    first = _submit(client).json()["id"]
    second = _submit(client).json()["id"]

    response = client.get("/api/expert-requests", params={"email": ADMIN_EMAIL})
    assert response.status_code == status.HTTP_200_OK
    assert [item["id"] for item in response.json()] == [second, first]
    assert response.json()[0]["status"] == "pending"


def test_non_admin_cannot_list(client) -> None:
    _submit(client)
    response = client.get("/api/expert-requests", params={"email": "victim@example.com"})
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_status_workflow(client) -> None:
    request_id = _submit(client).json()["id"]

    progress = client.patch(
        f"/api/expert-requests/{request_id}",
        json={"requesterEmail": ADMIN_EMAIL, "status": "in_progress", "assignedTo": "analyst"},
    )
    assert progress.status_code == status.HTTP_200_OK
    assert progress.json()["assignedTo"] == "analyst"
    assert progress.json()["completedDate"] is None

    done = client.patch(
        f"/api/expert-requests/{request_id}",
        json={"requesterEmail": ADMIN_EMAIL, "status": "completed"},
    )
    assert done.json()["status"] == "completed"
    assert done.json()["completedDate"].startswith("2024-05-14T12:00:00")


def test_status_update_errors(client) -> None:
    request_id = _submit(client).json()["id"]

    missing = client.patch(
        "/api/expert-requests/999",
        json={"requesterEmail": ADMIN_EMAIL, "status": "completed"},
    )
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.headers["X-User-IsAdmin"] == "true"

    bad_status = client.patch(
        f"/api/expert-requests/{request_id}",
        json={"requesterEmail": ADMIN_EMAIL, "status": "archived"},
    )
    assert bad_status.status_code == status.HTTP_400_BAD_REQUEST

    forbidden = client.patch(
        f"/api/expert-requests/{request_id}",
        json={"requesterEmail": "victim@example.com", "status": "declined"},
    )
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN
    assert forbidden.headers["X-RateLimit-Reset"] == "2024-05-15T00:00:00Z"
