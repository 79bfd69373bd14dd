"""initial schema

Revision ID: 5c2e8a1f9b3d
Revises:
Create Date: 2026-10-17 09:12:41.508113

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e8a1f9b3d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, quota, cache, audit and expert request tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscribed_to_blog", sa.Boolean(), nullable=False),
        sa.Column("requested_premium", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "rate_limits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ip_address", sa.Text(), nullable=False),
        sa.Column("user_email", sa.Text(), nullable=True),
        sa.Column("endpoint", sa.Text(), nullable=False),
        sa.Column("request_count", sa.Integer(), nullable=False),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("last_request_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_rate_limits_email_endpoint_date",
        "rate_limits",
        ["user_email", "endpoint", "date"],
    )
    op.create_index(
        "ix_rate_limits_ip_endpoint_date",
        "rate_limits",
        ["ip_address", "endpoint", "date"],
    )

    op.create_table(
        "bonus_prompts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("bonus_activated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("bonus_used_count", sa.Integer(), nullable=False),
        sa.Column("activation_day", sa.Text(), nullable=False),
        sa.Column("ip_address", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", "activation_day", name="uq_bonus_prompts_email_day"),
    )

    op.create_table(
        "crypto_terms",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("term", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False),
        sa.Column("related_terms", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("term"),
    )

    op.create_table(
        "scam_checks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("scenario", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("risk_level", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("red_flags", sa.JSON(), nullable=False),
        sa.Column("safety_tips", sa.JSON(), nullable=False),
        sa.Column("address_analysis", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scam_checks_scenario", "scam_checks", ["scenario"])

    op.create_table(
        "scan_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scan_type", sa.Text(), nullable=False),
        sa.Column("input_type", sa.Text(), nullable=False),
        sa.Column("scenario", sa.Text(), nullable=True),
        sa.Column("submitted_address_1", sa.Text(), nullable=True),
        sa.Column("submitted_address_2", sa.Text(), nullable=True),
        sa.Column("extracted_addresses", sa.JSON(), nullable=False),
        sa.Column("user_email", sa.Text(), nullable=True),
        sa.Column("admin_override_used", sa.Boolean(), nullable=False),
        sa.Column("risk_level", sa.Text(), nullable=True),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        sa.Column("etherscan_data", sa.JSON(), nullable=False),
        sa.Column("scan_result", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scan_logs_user_email", "scan_logs", ["user_email"])

    op.create_table(
        "premium_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("feature_requested", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("was_admin", sa.Boolean(), nullable=False),
        sa.Column("request_details", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_premium_requests_email", "premium_requests", ["email"])

    op.create_table(
        "expert_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("scenario", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("address_data", sa.JSON(), nullable=False),
        sa.Column("request_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_email", sa.Text(), nullable=True),
        sa.Column("was_admin", sa.Boolean(), nullable=False),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_expert_requests_user_email", "expert_requests", ["user_email"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_expert_requests_user_email", table_name="expert_requests")
    op.drop_table("expert_requests")
    op.drop_index("ix_premium_requests_email", table_name="premium_requests")
    op.drop_table("premium_requests")
    op.drop_index("ix_scan_logs_user_email", table_name="scan_logs")
    op.drop_table("scan_logs")
    op.drop_index("ix_scam_checks_scenario", table_name="scam_checks")
    op.drop_table("scam_checks")
    op.drop_table("crypto_terms")
    op.drop_table("bonus_prompts")
    op.drop_index("ix_rate_limits_ip_endpoint_date", table_name="rate_limits")
    op.drop_index("ix_rate_limits_email_endpoint_date", table_name="rate_limits")
    op.drop_table("rate_limits")
    op.drop_table("users")
