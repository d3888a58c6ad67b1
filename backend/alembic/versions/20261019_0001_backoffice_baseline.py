"""backoffice baseline: users, sessions, campaigns, approvals, history, catalog tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

_CAMPAIGN_STATUSES = (
    "DRAFT",
    "PLANNING",
    "DESIGN_COMPLETE",
    "PENDING_APPROVAL",
    "APPROVED",
    "REJECTED",
    "EDITING",
    "READY",
    "RUNNING",
    "PAUSED",
    "COMPLETED",
    "CANCELLED",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("token", sa.String(length=512), nullable=False, unique=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("warned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])
    op.create_table(
        "password_reset_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("processed_by", sa.String(length=320), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_password_reset_requests_user_id", "password_reset_requests", ["user_id"])
    op.create_index("ix_password_reset_requests_email", "password_reset_requests", ["email"])
    op.create_index("ix_password_reset_requests_status", "password_reset_requests", ["status"])

    op.create_table(
        "customer_groups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("group_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("customer_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("filter_criteria", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("use_yn", sa.String(length=1), nullable=False, server_default="Y"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_dept", sa.String(length=100), nullable=True),
        sa.Column("created_emp_no", sa.String(length=50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customer_groups_use_yn", "customer_groups", ["use_yn"])
    op.create_table(
        "offers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("value", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("value_type", sa.String(length=20), nullable=False, server_default="percentage"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_by", sa.String(length=320), nullable=False, server_default="unknown"),
        *_timestamps(),
    )
    op.create_index("ix_offers_status", "offers", ["status"])
    op.create_table(
        "scripts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("variables", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="DRAFT"),
        sa.Column("approval_status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=320), nullable=False, server_default="unknown"),
        *_timestamps(),
    )
    op.create_index("ix_scripts_status", "scripts", ["status"])
    op.create_table(
        "channels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("api_endpoint", sa.String(length=500), nullable=True),
        sa.Column("api_key", sa.Text(), nullable=True),
        sa.Column("api_secret", sa.Text(), nullable=True),
        sa.Column("config", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("rate_limit", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_per_message", sa.Numeric(10, 4), nullable=False, server_default="0"),
        sa.Column("monthly_quota", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_usage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_success", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(length=320), nullable=False, server_default="unknown"),
        *_timestamps(),
    )
    op.create_index("ix_channels_type", "channels", ["type"])
    op.create_index("ix_channels_status", "channels", ["status"])

    status_list = ", ".join(f"'{value}'" for value in _CAMPAIGN_STATUSES)
    op.create_table(
        "campaigns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="PLANNING"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("budget", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("spent", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("impressions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("conversions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("target_audience", sa.Text(), nullable=True),
        sa.Column("channels", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=320), nullable=False, server_default="unknown"),
        *_timestamps(),
        sa.CheckConstraint(f"status IN ({status_list})", name="ck_campaigns_status"),
    )
    op.create_index("ix_campaigns_status", "campaigns", ["status"])
    op.create_index("ix_campaigns_created_at", "campaigns", ["created_at"])

    for table_name, column_name, target in (
        ("campaign_customer_groups", "customer_group_id", "customer_groups.id"),
        ("campaign_offers", "offer_id", "offers.id"),
        ("campaign_scripts", "script_id", "scripts.id"),
    ):
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("campaign_id", sa.Integer(), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
            sa.Column(column_name, sa.Integer(), sa.ForeignKey(target, ondelete="CASCADE"), nullable=False),
        )
        op.create_index(f"ix_{table_name}_campaign_id", table_name, ["campaign_id"])
        op.create_index(f"ix_{table_name}_{column_name}", table_name, [column_name])

    op.create_table(
        "campaign_approval_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.Integer(), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("approver_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("request_message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("approval_comment", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_campaign_approval_requests_campaign_id", "campaign_approval_requests", ["campaign_id"])
    op.create_index("ix_campaign_approval_requests_requester_id", "campaign_approval_requests", ["requester_id"])
    op.create_index("ix_campaign_approval_requests_approver_id", "campaign_approval_requests", ["approver_id"])
    op.create_index("ix_campaign_approval_requests_status", "campaign_approval_requests", ["status"])
    op.create_index("ix_campaign_approval_requests_created_at", "campaign_approval_requests", ["created_at"])
    op.create_index(
        "uq_campaign_approval_requests_pending",
        "campaign_approval_requests",
        ["campaign_id"],
        unique=True,
        sqlite_where=sa.text("status = 'PENDING'"),
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        "campaign_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("campaign_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=20), nullable=False),
        sa.Column("action_by", sa.String(length=320), nullable=False, server_default="unknown"),
        sa.Column("previous_status", sa.String(length=30), nullable=True),
        sa.Column("new_status", sa.String(length=30), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("action_date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_campaign_history_campaign_id", "campaign_history", ["campaign_id"])
    op.create_index("ix_campaign_history_action_type", "campaign_history", ["action_type"])
    op.create_index("ix_campaign_history_action_date", "campaign_history", ["action_date"])

    op.create_table(
        "notices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="general"),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="normal"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("target_audience", sa.String(length=50), nullable=False, server_default="all"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_popup", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_important", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(length=320), nullable=False, server_default="Admin"),
        *_timestamps(),
    )
    op.create_index("ix_notices_type", "notices", ["type"])
    op.create_index("ix_notices_status", "notices", ["status"])
    op.create_index("ix_notices_created_at", "notices", ["created_at"])

    op.create_table(
        "system_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("level", sa.String(length=10), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("context", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_system_logs_level", "system_logs", ["level"])
    op.create_index("ix_system_logs_user_id", "system_logs", ["user_id"])
    op.create_index("ix_system_logs_created_at", "system_logs", ["created_at"])


def downgrade() -> None:
    for table_name in (
        "system_logs",
        "notices",
        "campaign_history",
        "campaign_approval_requests",
        "campaign_scripts",
        "campaign_offers",
        "campaign_customer_groups",
        "campaigns",
        "channels",
        "scripts",
        "offers",
        "customer_groups",
        "password_reset_requests",
        "sessions",
        "users",
    ):
        op.drop_table(table_name)
