"""Relational schema of the email-change document collections.

Each collection of the document store maps to one table whose columns carry
the item attributes one to one. Timestamps are timezone aware; token hashes
and the owner are indexed for the secondary lookups; `active_key` is unique so
that a user can never hold two active requests.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field, SQLModel, String

REQUESTS_COLLECTION = "email_change_requests"
AUDIT_LOGS_COLLECTION = "email_change_audit_logs"


def _timestamp(nullable: bool = True, index: bool = False) -> Any:
    return Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=nullable, index=index),
    )


class EmailChangeRequestRecord(SQLModel, table=True):
    __tablename__ = REQUESTS_COLLECTION

    id: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(index=True, max_length=64)
    current_email: str = Field(sa_column=Column(String(320), nullable=False))
    new_email: str = Field(sa_column=Column(String(320), nullable=False))
    status: str = Field(index=True, max_length=32)
    reason: str = Field(max_length=32)
    custom_reason: Optional[str] = Field(default=None, max_length=500)

    current_email_verified: bool = Field(default=False)
    new_email_verified: bool = Field(default=False)
    current_email_verified_at: Optional[datetime] = _timestamp()
    new_email_verified_at: Optional[datetime] = _timestamp()
    current_email_token_hash: str = Field(index=True, max_length=64)
    new_email_token_hash: str = Field(index=True, max_length=64)
    verification_tokens_expires_at: datetime = _timestamp(nullable=False)

    approved_by: Optional[str] = Field(default=None, max_length=64)
    approved_at: Optional[datetime] = _timestamp()
    approval_notes: Optional[str] = Field(default=None, max_length=1000)
    rejected_by: Optional[str] = Field(default=None, max_length=64)
    rejected_at: Optional[datetime] = _timestamp()
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)
    cancelled_by: Optional[str] = Field(default=None, max_length=64)
    cancelled_at: Optional[datetime] = _timestamp()
    completed_at: Optional[datetime] = _timestamp()
    estimated_completion_time: Optional[datetime] = _timestamp()

    requested_at: datetime = _timestamp(nullable=False, index=True)
    verified_at: Optional[datetime] = _timestamp()
    updated_at: Optional[datetime] = _timestamp()
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    active_key: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), unique=True, nullable=True),
    )


class EmailChangeAuditLogRecord(SQLModel, table=True):
    __tablename__ = AUDIT_LOGS_COLLECTION

    id: str = Field(primary_key=True, max_length=64)
    request_id: str = Field(index=True, max_length=64)
    action: str = Field(max_length=32)
    performed_by: Optional[str] = Field(default=None, max_length=64)
    performed_at: datetime = _timestamp(nullable=False, index=True)
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)
