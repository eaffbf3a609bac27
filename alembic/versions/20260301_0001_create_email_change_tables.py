"""Create users, email change request and audit log tables

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20260301_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the profile table and the two email-change collections."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="employee"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "email_change_requests",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("current_email", sa.String(length=320), nullable=False),
        sa.Column("new_email", sa.String(length=320), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("custom_reason", sa.String(length=500), nullable=True),
        sa.Column("current_email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("new_email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("new_email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_email_token_hash", sa.String(length=64), nullable=False),
        sa.Column("new_email_token_hash", sa.String(length=64), nullable=False),
        sa.Column("verification_tokens_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.String(length=1000), nullable=True),
        sa.Column("rejected_by", sa.String(length=64), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=1000), nullable=True),
        sa.Column("cancelled_by", sa.String(length=64), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_completion_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("active_key", sa.String(length=64), nullable=True),
        sa.UniqueConstraint("active_key", name="uq_email_change_requests_active_key"),
    )
    op.create_index("ix_email_change_requests_user_id", "email_change_requests", ["user_id"])
    op.create_index("ix_email_change_requests_status", "email_change_requests", ["status"])
    op.create_index("ix_email_change_requests_requested_at", "email_change_requests", ["requested_at"])
    op.create_index(
        "ix_email_change_requests_current_email_token_hash",
        "email_change_requests",
        ["current_email_token_hash"],
    )
    op.create_index(
        "ix_email_change_requests_new_email_token_hash",
        "email_change_requests",
        ["new_email_token_hash"],
    )

    op.create_table(
        "email_change_audit_logs",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("request_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("performed_by", sa.String(length=64), nullable=True),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
    )
    op.create_index("ix_email_change_audit_logs_request_id", "email_change_audit_logs", ["request_id"])
    op.create_index("ix_email_change_audit_logs_performed_at", "email_change_audit_logs", ["performed_at"])


def downgrade() -> None:
    """Drop the email-change tables and the profile table."""
    op.drop_index("ix_email_change_audit_logs_performed_at", table_name="email_change_audit_logs")
    op.drop_index("ix_email_change_audit_logs_request_id", table_name="email_change_audit_logs")
    op.drop_table("email_change_audit_logs")

    op.drop_index("ix_email_change_requests_new_email_token_hash", table_name="email_change_requests")
    op.drop_index("ix_email_change_requests_current_email_token_hash", table_name="email_change_requests")
    op.drop_index("ix_email_change_requests_requested_at", table_name="email_change_requests")
    op.drop_index("ix_email_change_requests_status", table_name="email_change_requests")
    op.drop_index("ix_email_change_requests_user_id", table_name="email_change_requests")
    op.drop_table("email_change_requests")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
