"""SQLAlchemy model for email-identified users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from crypto_clarity.db.session import Base
from crypto_clarity.db.time import utcnow


class User(Base):
    """A caller known only by a normalized, unverified email address."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set by the upsell flow from the email alone; there is no payment gate.
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    subscribed_to_blog: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requested_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
