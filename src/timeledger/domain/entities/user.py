from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel, String


class Role(str, Enum):
    """Role of a user within a TimeLedger organisation.

    Attributes:
        EMPLOYEE: Tracks time, sees own data.
        MANAGER: Manages schedules and reports of a team.
        ADMIN: Administers the organisation, including email-change approvals.
    """

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class User(SQLModel, table=True):
    """User profile record.

    Only the attributes the email-change workflow reads or writes are
    modelled: the display name used in notifications, the email address that
    a completed request rewrites, the role and the active flag.
    """

    __tablename__ = "users"

    id: str = Field(primary_key=True, max_length=64)
    name: str = Field(default="", max_length=255)
    email: str = Field(
        sa_column=Column(String(320), unique=True, index=True, nullable=False),
    )
    role: Role = Field(
        sa_column=Column(String(32), nullable=False, default=Role.EMPLOYEE.value),
        default=Role.EMPLOYEE,
    )
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: Optional[datetime] = Field(
        sa_column=Column(DateTime(timezone=True), nullable=True),
        default=None,
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email
