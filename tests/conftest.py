# tests/conftest.py
from __future__ import annotations

import os
from collections import Counter
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crypto_clarity.api.v1 import dependencies as deps
from crypto_clarity.db.session import Base
from crypto_clarity.db.session import get_db as app_get_session
from crypto_clarity.main import app as fastapi_app
from crypto_clarity.services.admins import AdminAllowList
from crypto_clarity.services.assistant import LanguageModelError, ScamAssessment, TermExplanation
from crypto_clarity.services.entitlement import EntitlementResolver
from crypto_clarity.services.etherscan import EtherscanError
from crypto_clarity.services.gate import QuotaGate
from crypto_clarity.services.quota import BonusLedger, QuotaLedger

TEST_DB_URL = "sqlite://"
ADMIN_EMAIL = "admin@example.com"

VITALIK = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
UNKNOWN_WALLET = "0x1234567890abcdef1234567890abcdef12345678"
UNKNOWN_CONTRACT = "0x9999999999999999999999999999999999999999"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class FakeEtherscan:
    """In-memory stand-in for the Etherscan client with per-method call counts."""

    def __init__(self) -> None:
        self.balances: dict[str, int] = {}
        self.contracts: set[str] = set()
        self.verified: dict[str, str] = {}
        self.transactions: dict[str, list[dict[str, Any]]] = {}
        self.tokens: dict[str, list[dict[str, Any]]] = {}
        self.failing: set[str] = set()
        self.creations: dict[str, dict[str, Any]] = {}
        self.transactions_by_hash: dict[str, dict[str, Any]] = {}
        self.block_times: dict[int, int] = {}
        self.calls: Counter[str] = Counter()

    def _touch(self, method: str, address: str) -> str:
        self.calls[method] += 1
        key = address.lower()
        if key in self.failing:
            raise EtherscanError(f"{method} rate limited")
        return key

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def is_contract(self, address: str) -> bool:
        return self._touch("is_contract", address) in self.contracts

    async def get_balance_wei(self, address: str) -> int:
        return self.balances.get(self._touch("get_balance_wei", address), 0)

    async def get_transaction_count(self, address: str) -> int:
        return len(self.transactions.get(self._touch("get_transaction_count", address), []))

    async def get_transactions(
        self, address: str, *, limit: int = 10, sort: str = "desc"
    ) -> list[dict[str, Any]]:
        txs = sorted(
            self.transactions.get(self._touch("get_transactions", address), []),
            key=lambda tx: int(tx["timeStamp"]),
            reverse=sort == "desc",
        )
        return txs[:limit]

    async def get_token_transfers(
        self, address: str, *, limit: int = 10, sort: str = "desc"
    ) -> list[dict[str, Any]]:
        return self.tokens.get(self._touch("get_token_transfers", address), [])[:limit]

    async def get_internal_transactions(
        self, address: str, *, limit: int = 10, sort: str = "desc"
    ) -> list[dict[str, Any]]:
        self._touch("get_internal_transactions", address)
        return []

    async def is_verified_contract(self, address: str) -> bool:
        return self._touch("is_verified_contract", address) in self.verified

    async def get_source_code(self, address: str) -> dict[str, Any] | None:
        name = self.verified.get(self._touch("get_source_code", address))
        return {"ContractName": name} if name else None

    async def get_contract_creation(self, address: str) -> dict[str, Any] | None:
        key = self._touch("get_contract_creation", address)
        return self.creations.get(key, {"contractCreator": "0xcreator", "txHash": ""})

    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        self.calls["get_transaction"] += 1
        return self.transactions_by_hash.get(tx_hash)

    async def get_block_timestamp(self, block_number: int) -> int | None:
        self.calls["get_block_timestamp"] += 1
        return self.block_times.get(block_number)

    async def close(self) -> None:
        return None


class FakeAssistant:
    """Language model double that records every call it receives."""

    def __init__(self) -> None:
        self.translate_calls: list[tuple[str, str]] = []
        self.assess_calls: list[dict[str, Any]] = []
        self.fail = False
        self.risk_level = "High Risk"

    @property
    def total_calls(self) -> int:
        return len(self.translate_calls) + len(self.assess_calls)

    async def translate_term(self, term: str, audience: str = "beginner") -> TermExplanation:
        self.translate_calls.append((term, audience))
        if self.fail:
            raise LanguageModelError("model unavailable")
        return TermExplanation(
            explanation=f"{term} explained for a {audience} reader.",
            related_terms=["Wallet", "Gas", "Private Key"],
        )

    async def assess_scenario(
        self,
        scenario: str,
        address_context: str = "",
        *,
        address_only: bool = False,
    ) -> ScamAssessment:
        self.assess_calls.append(
            {"scenario": scenario, "address_context": address_context, "address_only": address_only}
        )
        if self.fail:
            raise LanguageModelError("model unavailable")
        return ScamAssessment(
            risk_level=self.risk_level,
            summary="Guaranteed daily returns are a classic Ponzi pattern.",
            red_flags=["Unrealistic guaranteed returns", "Pressure to deposit quickly"],
            safety_tips=["Never send funds to unverified platforms"],
            address_analysis="No legitimate entity is associated with this offer.",
        )


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Services commit as they go, so wipe every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 5, 14, 12, 0, tzinfo=UTC))


@pytest.fixture()
def allow_list() -> AdminAllowList:
    return AdminAllowList([ADMIN_EMAIL])


@pytest.fixture()
def fake_etherscan() -> FakeEtherscan:
    return FakeEtherscan()


@pytest.fixture()
def fake_assistant() -> FakeAssistant:
    return FakeAssistant()


@pytest.fixture()
def resolver(db_session: Session, allow_list: AdminAllowList) -> EntitlementResolver:
    return EntitlementResolver(db_session, allow_list)


@pytest.fixture()
def bonus_ledger(db_session: Session, clock: FrozenClock) -> BonusLedger:
    return BonusLedger(db_session, max_bonus=5, clock=clock)


@pytest.fixture()
def quota_ledger(
    db_session: Session,
    resolver: EntitlementResolver,
    bonus_ledger: BonusLedger,
    clock: FrozenClock,
) -> QuotaLedger:
    return QuotaLedger(
        db_session,
        resolver,
        bonus_ledger,
        free_limit=5,
        premium_limit=1000,
        clock=clock,
    )


@pytest.fixture()
def gate(quota_ledger: QuotaLedger, clock: FrozenClock) -> QuotaGate:
    return QuotaGate(quota_ledger, clock=clock)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def override_collaborators(
    app: FastAPI,
    allow_list: AdminAllowList,
    clock: FrozenClock,
    fake_etherscan: FakeEtherscan,
    fake_assistant: FakeAssistant,
) -> Iterator[None]:
    overrides = {
        deps.get_allow_list: lambda: allow_list,
        deps.get_clock: lambda: clock,
        deps.get_etherscan: lambda: fake_etherscan,
        deps.get_crypto_assistant: lambda: fake_assistant,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
