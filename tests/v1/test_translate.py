# tests/v1/test_translate.py
"""Tests for term explanation endpoints."""

from fastapi import status

from crypto_clarity.models import CryptoTerm, RateLimit


def test_translate_returns_explanation_and_quota_headers(client, fake_assistant) -> None:
    response = client.post("/api/translate", json={"term": "Staking"})
    assert response.status_code == status.HTTP_200_OK

    data = response.json()
    assert data["term"] == "Staking"
    assert data["explanation"] == "Staking explained for a beginner reader."
    assert data["relatedTerms"] == ["Wallet", "Gas", "Private Key"]
    assert data["isAdmin"] is False

    assert response.headers["X-RateLimit-Limit"] == "5"
    assert response.headers["X-RateLimit-Reset"] == "2024-05-15T00:00:00Z"
    assert response.headers["X-User-IsAdmin"] == "false"
    assert response.headers["X-User-IsPremium"] == "false"
    assert fake_assistant.translate_calls == [("Staking", "beginner")]


def test_beginner_terms_served_from_cache(client, db_session, fake_assistant) -> None:
    client.post("/api/translate", json={"term": "Gas fees"})
    response = client.post("/api/translate", json={"term": "gas   FEES"})

    assert response.status_code == status.HTTP_200_OK
    assert len(fake_assistant.translate_calls) == 1
    assert db_session.query(CryptoTerm).count() == 1
    assert db_session.query(RateLimit).one().request_count == 2


def test_email_raises_ceiling(client) -> None:
    response = client.post(
        "/api/translate",
        json={"term": "Layer 2", "audienceType": "expert", "email": "reader@example.com"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["X-RateLimit-Limit"] == "1000"
    assert response.headers["X-User-IsPremium"] == "true"


def test_validation_errors_name_the_field(client, fake_assistant) -> None:
    response = client.post("/api/translate", json={"term": "ab"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    body = response.json()
    assert body["message"] == "Invalid request data"
    assert [error["field"] for error in body["errors"]] == ["term"]
    assert fake_assistant.total_calls == 0


def test_script_content_rejected(client) -> None:
    response = client.post("/api/translate", json={"term": "<script>alert(1)</script>"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_model_failure_is_generic_and_free(client, db_session, fake_assistant) -> None:
    fake_assistant.fail = True
    response = client.post("/api/translate", json={"term": "Rug pull"})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert "model unavailable" not in response.text
    assert response.headers["X-RateLimit-Limit"] == "5"
    assert db_session.query(RateLimit).count() == 0
    assert db_session.query(CryptoTerm).count() == 0


def test_recent_terms_newest_first(client, clock) -> None:
    for term in ["Wallet", "Seed phrase", "DeFi"]:
        client.post("/api/translate", json={"term": term})
        clock.advance(minutes=1)

    response = client.get("/api/translate/recent")
    assert response.status_code == status.HTTP_200_OK
    assert [item["term"] for item in response.json()][0] == "defi"


def test_recent_shares_translate_quota(client, db_session) -> None:
    for _ in range(5):
        assert client.get("/api/translate/recent").status_code == status.HTTP_200_OK

    response = client.post("/api/translate", json={"term": "Airdrop"})
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert db_session.query(RateLimit).one().request_count == 5
