from __future__ import annotations

"""Factory for generating fake user data for testing."""

from datetime import datetime, timezone
from typing import Optional

from faker import Faker

from timeledger.domain.entities.user import Role, User

fake = Faker()


def create_fake_user(
    id: Optional[str] = None,
    name: Optional[str] = None,
    email: Optional[str] = None,
    role: Role = Role.EMPLOYEE,
    is_active: bool = True,
    created_at: Optional[datetime] = None,
) -> User:
    """Create a fake User entity for testing.

    Args:
        id (Optional[str]): User ID, defaults to a random UUID.
        name (Optional[str]): Display name, defaults to a fake name.
        email (Optional[str]): Email, defaults to a fake company email.
        role (Role): User role, defaults to EMPLOYEE.
        is_active (bool): Whether the user is active, defaults to True.
        created_at (Optional[datetime]): Creation timestamp, defaults to now.

    Returns:
        User: A User entity with fake data.
    """
    return User(
        id=id or fake.uuid4(),
        name=name if name is not None else fake.name(),
        email=email or fake.company_email(),
        role=role,
        is_active=is_active,
        created_at=created_at or datetime.now(timezone.utc),
    )
