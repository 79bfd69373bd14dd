"""Schemas for bonus activation, subscriptions, admin and usage endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field

from .common import CamelModel


class BonusActivateRequest(CamelModel):
    email: EmailStr


class BonusPromptsStatus(CamelModel):
    has_bonus_prompts: bool
    remaining_bonus_prompts: int
    already_used_today: bool


class BonusActivateResponse(CamelModel):
    success: bool
    message: str
    already_activated: bool
    bonus_prompts: BonusPromptsStatus


class SubscribeRequest(CamelModel):
    email: EmailStr
    source: str | None = Field(None, max_length=100)
    subscribe_to_newsletter: bool = False


class SubscribeResponse(CamelModel):
    success: bool
    message: str
    is_admin: bool


class AdminCheckResponse(CamelModel):
    email: str
    exists: bool
    is_admin: bool
    joined_at: datetime | None = None
    subscribed_to_blog: bool | None = None
    requested_premium: bool | None = None
    message: str | None = None


class AdminAddRequest(CamelModel):
    requester_email: EmailStr
    new_admin_email: EmailStr


class AdminEmailsResponse(CamelModel):
    admin_emails: list[str]
    count: int
    message: str | None = None


class UsageTotals(CamelModel):
    total_scans: int
    premium_scans: int
    premium_feature_requests: int
    last_activity: datetime | None = None


class UsageStatsResponse(CamelModel):
    email: str
    user_exists: bool
    is_admin: bool
    stats: UsageTotals
    scan_types: dict[str, int] = Field(default_factory=dict)
    requested_features: list[str] = Field(default_factory=list)
