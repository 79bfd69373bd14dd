from datetime import UTC, datetime

import pytest
from sqlalchemy.orm import Session

from crypto_clarity.services.errors import NotFoundError
from crypto_clarity.services.expert_service import (
    create_expert_request,
    list_expert_requests,
    update_expert_request,
)
from tests.conftest import UNKNOWN_WALLET, VITALIK


def test_create_stores_roles_and_primary_address(db_session: Session) -> None:
    request = create_expert_request(
        db_session,
        scenario="A recovery service contacted me after I lost funds",
        user_address=UNKNOWN_WALLET,
        extracted_addresses=[VITALIK, UNKNOWN_WALLET.upper().replace("0X", "0x")],
        email=" Victim@Example.com ",
    )

    assert request.status == "pending"
    assert request.address == UNKNOWN_WALLET
    assert request.address_data == [
        {"address": UNKNOWN_WALLET, "role": "user"},
        {"address": VITALIK, "role": "extracted"},
    ]
    assert request.user_email == "victim@example.com"
    assert request.completed_date is None


def test_create_without_addresses(db_session: Session) -> None:
    request = create_expert_request(db_session, scenario="Strange DM on Discord")

    assert request.address is None
    assert request.address_data == []


def test_list_is_newest_first(db_session: Session) -> None:
    first = create_expert_request(db_session, scenario="first case")
    second = create_expert_request(db_session, scenario="second case")

    assert [item.id for item in list_expert_requests(db_session)] == [second.id, first.id]


def test_status_workflow_stamps_completion(db_session: Session) -> None:
    request = create_expert_request(db_session, scenario="case to review")
    done_at = datetime(2024, 5, 20, 9, 30, tzinfo=UTC)

    in_progress = update_expert_request(
        db_session, request.id, status="in_progress", assigned_to="analyst@example.com"
    )
    assert in_progress.assigned_to == "analyst@example.com"
    assert in_progress.completed_date is None

    completed = update_expert_request(
        db_session, request.id, status="completed", clock=lambda: done_at
    )
    assert completed.assigned_to == "analyst@example.com"
    assert completed.completed_date.replace(tzinfo=UTC) == done_at


def test_update_errors(db_session: Session) -> None:
    with pytest.raises(NotFoundError):
        update_expert_request(db_session, 404, status="completed")

    request = create_expert_request(db_session, scenario="case to review")
    with pytest.raises(ValueError):
        update_expert_request(db_session, request.id, status="archived")
