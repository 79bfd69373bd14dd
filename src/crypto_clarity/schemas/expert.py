"""Schemas for expert investigation requests."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, EmailStr, Field

from .common import CamelModel, EthereumAddress, OptionalAddress, OptionalEmail, UserText

ExpertStatus = Literal["pending", "in_progress", "completed", "declined"]


class ExpertRequestCreate(CamelModel):
    scenario: UserText
    suspicious_address: OptionalAddress = None
    user_address: OptionalAddress = None
    extracted_addresses: list[EthereumAddress] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=2000)
    email: OptionalEmail = None


class ExpertRequestCreated(CamelModel):
    id: int
    message: str
    request_date: datetime
    is_admin: bool


class ExpertRequestResponse(CamelModel):
    """An expert request as shown to admins."""

    id: int
    scenario: str
    address: str | None
    address_data: list[dict[str, Any]] = Field(default_factory=list)
    request_date: datetime
    status: str
    notes: str | None = None
    user_email: str | None = None
    was_admin: bool
    completed_date: datetime | None = None
    assigned_to: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ExpertStatusUpdate(CamelModel):
    requester_email: EmailStr
    status: ExpertStatus
    assigned_to: str | None = Field(None, max_length=255)
