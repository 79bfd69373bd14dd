"""Schemas for term explanations."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field

from .common import CamelModel, OptionalEmail, UserText


class TranslateRequest(CamelModel):
    """A term or question to explain at the requested depth."""

    term: UserText
    audience_type: Literal["beginner", "intermediate", "expert"] = Field(
        "beginner", description="Depth of the explanation"
    )
    email: OptionalEmail = None


class TranslateResponse(CamelModel):
    term: str
    explanation: str
    related_terms: list[str] = Field(default_factory=list)
    is_admin: bool | None = None


class RecentTermResponse(CamelModel):
    """A cached beginner explanation."""

    id: int
    term: str
    explanation: str
    related_terms: list[str] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
