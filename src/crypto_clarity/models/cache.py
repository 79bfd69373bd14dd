"""Result caches for explanations and text-only scans."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from crypto_clarity.db.session import Base
from crypto_clarity.db.time import utcnow


class CryptoTerm(Base):
    """Beginner-level explanation of a term, keyed by the normalized term."""

    __tablename__ = "crypto_terms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    term: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, nullable=False)
    related_terms: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ScamCheck(Base):
    """Basic-tier assessment of a scenario submitted without any address."""

    __tablename__ = "scam_checks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scenario: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    risk_level: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    red_flags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    safety_tips: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    address_analysis: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
