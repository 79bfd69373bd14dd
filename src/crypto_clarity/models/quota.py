"""Models backing the daily quota and bonus allocations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crypto_clarity.db.session import Base
from crypto_clarity.db.time import utcnow


class RateLimit(Base):
    """Per-day request counter for one caller and endpoint category.

    Rows are keyed by the UTC ``date`` string, so a new day means a new row
    rather than a zeroed counter.
    """

    __tablename__ = "rate_limits"
    __table_args__ = (
        Index("ix_rate_limits_email_endpoint_date", "user_email", "endpoint", "date"),
        Index("ix_rate_limits_ip_endpoint_date", "ip_address", "endpoint", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(Text, nullable=False)
    user_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    last_request_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class BonusPrompt(Base):
    """One-per-day bonus allowance unlocked by submitting an email."""

    __tablename__ = "bonus_prompts"
    __table_args__ = (
        UniqueConstraint("email", "activation_day", name="uq_bonus_prompts_email_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    bonus_activated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    bonus_used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activation_day: Mapped[str] = mapped_column(Text, nullable=False)
    ip_address: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
