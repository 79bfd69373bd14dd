"""Append-only analytics records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from crypto_clarity.db.session import Base
from crypto_clarity.db.time import utcnow

SCAN_TYPE_FREE = "free"
SCAN_TYPE_PREMIUM = "premium"

INPUT_TYPE_ADDRESS_ONLY = "address_only"
INPUT_TYPE_SCENARIO_ONLY = "scenario_only"
INPUT_TYPE_BOTH = "both"


class ScanLog(Base):
    """One row per admitted and completed scan."""

    __tablename__ = "scan_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    scan_type: Mapped[str] = mapped_column(Text, nullable=False)
    input_type: Mapped[str] = mapped_column(Text, nullable=False)
    scenario: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_address_1: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_address_2: Mapped[str | None] = mapped_column(Text, nullable=True)
    extracted_addresses: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    user_email: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    admin_override_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    risk_level: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    etherscan_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    scan_result: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


class PremiumRequest(Base):
    """Interest in a gated feature, or an email-capture event."""

    __tablename__ = "premium_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    feature_requested: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    was_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    request_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
