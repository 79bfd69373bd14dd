"""Requests for a manual follow-up by a human investigator."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from crypto_clarity.db.session import Base
from crypto_clarity.db.time import utcnow

EXPERT_STATUS_PENDING = "pending"
EXPERT_STATUS_IN_PROGRESS = "in_progress"
EXPERT_STATUS_COMPLETED = "completed"
EXPERT_STATUS_DECLINED = "declined"

EXPERT_STATUSES = (
    EXPERT_STATUS_PENDING,
    EXPERT_STATUS_IN_PROGRESS,
    EXPERT_STATUS_COMPLETED,
    EXPERT_STATUS_DECLINED,
)


class ExpertRequest(Base):
    """Mutable investigation request; ``status`` is advanced by admins."""

    __tablename__ = "expert_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scenario: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    # [{"address": "0x...", "role": "suspicious" | "user" | "extracted"}]
    address_data: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default=EXPERT_STATUS_PENDING)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_email: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    was_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(Text, nullable=True)
