import os

# Settings are read once at import time; configure the test environment first.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-chars")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-that-is-32-chars-long")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./timeledger_test.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("ADMIN_EMAILS", "it-admin@acme.com")

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from timeledger.domain.entities.principal import Principal
from timeledger.domain.entities.user import Role
from timeledger.domain.interfaces.services import IEmailChangeNotificationService
from timeledger.infrastructure.database.tables import REQUESTS_COLLECTION
from timeledger.infrastructure.repositories import EmailChangeRepository
from timeledger.infrastructure.storage import InMemoryDocumentStore

from tests.factories.user import create_fake_user
from tests.utils.fakes import FakeClock, InMemoryUserRepository


@pytest.fixture
def clock():
    """Controllable clock starting at a fixed instant."""
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryDocumentStore(unique_fields={REQUESTS_COLLECTION: ["active_key"]})


@pytest.fixture
def email_change_repository(store, clock):
    return EmailChangeRepository(store, token_expiry_hours=24, clock=clock)


@pytest.fixture
def employee():
    return create_fake_user(id="user-employee", name="Jane Doe", email="jane@acme.com", role=Role.EMPLOYEE)


@pytest.fixture
def admin():
    return create_fake_user(id="user-admin", name="Alex Admin", email="alex@acme.com", role=Role.ADMIN)


@pytest.fixture
def other_employee():
    return create_fake_user(id="user-other", name="Sam Other", email="sam@acme.com", role=Role.EMPLOYEE)


@pytest.fixture
def user_repository(employee, admin, other_employee):
    return InMemoryUserRepository([employee, admin, other_employee])


@pytest.fixture
def employee_principal(employee):
    return Principal(user_id=employee.id, role=Role.EMPLOYEE)


@pytest.fixture
def admin_principal(admin):
    return Principal(user_id=admin.id, role=Role.ADMIN)


@pytest.fixture
def other_principal(other_employee):
    return Principal(user_id=other_employee.id, role=Role.EMPLOYEE)


@pytest.fixture
def mock_notification_service():
    """Notification port whose every send succeeds."""
    return AsyncMock(spec=IEmailChangeNotificationService)


@pytest_asyncio.fixture
async def submitted_request(email_change_repository, employee):
    """A pending-verification request of the employee with both plain tokens attached."""
    from timeledger.domain.entities.email_change_request import ChangeReason

    return await email_change_repository.create_request(
        user_id=employee.id,
        current_email=employee.email,
        new_email="jane.doe@acme.com",
        reason=ChangeReason.PERSONAL_PREFERENCE,
    )
