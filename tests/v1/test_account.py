# tests/v1/test_account.py
"""Tests for bonus activation, subscriptions, admin checks and usage stats."""

from fastapi import status

from crypto_clarity.models import BonusPrompt, PremiumRequest, User
from tests.conftest import ADMIN_EMAIL

PONZI = "Someone is offering 10% daily returns on deposits"


def test_activate_bonus_is_idempotent(client, db_session) -> None:
    first = client.post("/api/activate-bonus", json={"email": "Saver@Example.com"})
    assert first.status_code == status.HTTP_200_OK
    data = first.json()
    assert data["success"] is True
    assert data["alreadyActivated"] is False
    assert data["message"] == (
        "Bonus prompts successfully activated! You now have 5 additional prompts for today."
    )
    assert data["bonusPrompts"] == {
        "hasBonusPrompts": True,
        "remainingBonusPrompts": 5,
        "alreadyUsedToday": False,
    }

    second = client.post("/api/activate-bonus", json={"email": "saver@example.com"})
    assert second.json()["alreadyActivated"] is True
    assert second.json()["bonusPrompts"]["alreadyUsedToday"] is True

    bonus = db_session.query(BonusPrompt).one()
    assert bonus.email == "saver@example.com"
    assert bonus.activation_day == "2024-05-14"
    interest = db_session.query(PremiumRequest).one()
    assert interest.feature_requested == "bonus_prompts"


def test_activate_bonus_requires_valid_email(client) -> None:
    response = client.post("/api/activate-bonus", json={"email": "nope"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["field"] == "email"


def test_exhausted_bonus_message(client, db_session) -> None:
    client.post("/api/activate-bonus", json={"email": "saver@example.com"})
    bonus = db_session.query(BonusPrompt).one()
    bonus.bonus_used_count = 5
    db_session.commit()

    response = client.post("/api/activate-bonus", json={"email": "saver@example.com"})
    data = response.json()
    assert data["message"] == "You've already used all your bonus prompts for today."
    assert data["bonusPrompts"]["hasBonusPrompts"] is False
    assert data["bonusPrompts"]["remainingBonusPrompts"] == 0


def test_subscribe_flags_user(client, db_session) -> None:
    response = client.post(
        "/api/subscribe",
        json={"email": "fan@example.com", "subscribeToNewsletter": True},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "message": "Subscription successful", "isAdmin": False}

    user = db_session.query(User).filter(User.email == "fan@example.com").one()
    assert user.is_premium is True
    assert user.requested_premium is True
    assert user.subscribed_to_blog is True

    interest = db_session.query(PremiumRequest).one()
    assert interest.feature_requested == "premium_subscription"
    assert interest.request_details["source"] == "direct"


def test_subscribe_admin_reports_admin(client) -> None:
    response = client.post("/api/subscribe", json={"email": ADMIN_EMAIL, "source": "footer"})
    assert response.json()["isAdmin"] is True


def test_check_admin_unknown_user(client, db_session) -> None:
    response = client.get("/api/check-admin", params={"email": "ghost@example.com"})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["exists"] is False
    assert data["isAdmin"] is False
    assert data["message"] == "User not found"
    # Looking someone up never creates them.
    assert db_session.query(User).count() == 0


def test_check_admin_allow_listed(client) -> None:
    client.post("/api/subscribe", json={"email": ADMIN_EMAIL})
    data = client.get("/api/check-admin", params={"email": ADMIN_EMAIL.upper()}).json()
    assert data["email"] == ADMIN_EMAIL
    assert data["exists"] is True
    assert data["isAdmin"] is True
    assert data["requestedPremium"] is True


def test_usage_stats(client) -> None:
    email = "reader@example.com"
    client.post("/api/check-scam", json={"scenario": PONZI, "email": email})
    client.post("/api/check-scam", json={"scenario": PONZI, "email": email, "scanType": "advanced"})
    client.post("/api/check-scam", json={"scenario": PONZI})

    response = client.get("/api/usage-stats", params={"email": email})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["userExists"] is True
    assert data["isAdmin"] is False
    assert data["stats"]["totalScans"] == 2
    assert data["stats"]["premiumScans"] == 1
    assert data["stats"]["premiumFeatureRequests"] == 1
    assert data["stats"]["lastActivity"] is not None
    assert data["scanTypes"] == {"free": 1, "premium": 1}
    assert data["requestedFeatures"] == ["advanced_scan"]
