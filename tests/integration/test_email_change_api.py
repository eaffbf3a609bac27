"""End-to-end tests of the email-change HTTP API.

The application is driven in-process through httpx. Persistence is the
in-memory document store, the profile store is an in-memory user repository
and outgoing mail is an AsyncMock, all swapped in with
``app.dependency_overrides``. Bearer tokens are real HS256 JWTs.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from jose import jwt

from timeledger.core.application import create_application
from timeledger.core.config.settings import settings
from timeledger.core.ratelimiter import get_limiter
from timeledger.domain.entities.email_change_request import EmailType
from timeledger.infrastructure.dependency_injection.email_change_dependencies import (
    get_email_change_repository,
    get_identity_provider,
    get_notification_service,
    get_user_repository,
)
from timeledger.infrastructure.database.tables import REQUESTS_COLLECTION
from timeledger.infrastructure.repositories import EmailChangeRepository

BASE = "/api/v1/email-change"

pytestmark = pytest.mark.integration


def bearer(user, role=None):
    token = jwt.encode(
        {
            "sub": user.id,
            "role": (role or user.role).value,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
        },
        settings.JWT_SECRET_KEY.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


def sent_tokens(notifications):
    """Plain tokens handed to the mail port, keyed by address side."""
    return {call.args[1]: call.args[2] for call in notifications.send_verification_email.await_args_list}


@pytest.fixture
def app(store, user_repository, mock_notification_service):
    application = create_application()
    repository = EmailChangeRepository(store, token_expiry_hours=24)
    application.dependency_overrides[get_email_change_repository] = lambda: repository
    application.dependency_overrides[get_user_repository] = lambda: user_repository
    application.dependency_overrides[get_notification_service] = lambda: mock_notification_service
    application.dependency_overrides[get_identity_provider] = lambda: None
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestEmailChangeLifecycle:
    @pytest.mark.asyncio
    async def test_submit_verify_approve_process(
        self, client, employee, admin, user_repository, mock_notification_service
    ):
        # Submit
        response = await client.post(
            f"{BASE}/requests",
            json={"new_email": "jane@newco.com", "reason": "company_change"},
            headers=bearer(employee),
        )
        assert response.status_code == 201
        body = response.json()
        request_id = body["request"]["id"]
        assert body["requires_approval"] is True
        assert body["request"]["status"] == "pending_verification"
        tokens = sent_tokens(mock_notification_service)
        assert set(tokens) == {EmailType.CURRENT, EmailType.NEW}

        # Verify both addresses
        first = await client.post(f"{BASE}/verify", json={"token": tokens[EmailType.CURRENT], "email_type": "current"})
        second = await client.post(f"{BASE}/verify", json={"token": tokens[EmailType.NEW], "email_type": "new"})
        assert first.status_code == 200
        assert first.json()["next_step"] == "verify_other_email"
        assert second.json()["status"] == "pending_approval"

        # Approve
        response = await client.post(
            f"{BASE}/requests/{request_id}/approve",
            json={"approval_notes": "Moved to NewCo"},
            headers=bearer(admin),
        )
        assert response.status_code == 200
        assert response.json()["approved_by_name"] == "Alex Admin"

        # Process
        response = await client.post(f"{BASE}/requests/{request_id}/process", headers=bearer(admin))
        assert response.status_code == 200
        assert response.json()["request"]["status"] == "completed"
        assert user_repository.users[employee.id].email == "jane@newco.com"

        # Audit trail
        response = await client.get(f"{BASE}/requests/{request_id}", headers=bearer(employee))
        assert [entry["action"] for entry in response.json()["audit_log"]] == [
            "created",
            "current_email_verified",
            "new_email_verified",
            "approved",
            "completed",
        ]

    @pytest.mark.asyncio
    async def test_owner_cancels_and_can_list(self, client, employee):
        submitted = await client.post(
            f"{BASE}/requests",
            json={"new_email": "jane.d@acme.com", "reason": "personal_preference"},
            headers=bearer(employee),
        )
        request_id = submitted.json()["request"]["id"]

        cancelled = await client.post(f"{BASE}/requests/{request_id}/cancel", headers=bearer(employee))
        listed = await client.get(f"{BASE}/requests", headers=bearer(employee))

        assert cancelled.status_code == 200
        assert cancelled.json()["cancelled_by_name"] == "Jane Doe"
        assert [item["status"] for item in listed.json()["items"]] == ["cancelled"]

    @pytest.mark.asyncio
    async def test_second_active_request_conflicts(self, client, employee):
        payload = {"new_email": "jane@newco.com", "reason": "company_change"}
        await client.post(f"{BASE}/requests", json=payload, headers=bearer(employee))

        response = await client.post(f"{BASE}/requests", json=payload, headers=bearer(employee))

        assert response.status_code == 409
        assert response.json()["error_code"] == "ACTIVE_REQUEST_EXISTS"


class TestVerificationPage:
    @pytest.mark.asyncio
    async def test_renders_success(self, client, employee, mock_notification_service):
        await client.post(
            f"{BASE}/requests",
            json={"new_email": "jane@newco.com", "reason": "company_change"},
            headers=bearer(employee),
        )
        token = sent_tokens(mock_notification_service)[EmailType.NEW]

        response = await client.get(f"{BASE}/verify", params={"token": token, "type": "new"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Email verified" in response.text

    @pytest.mark.asyncio
    async def test_overlong_user_agent_is_stored_truncated(self, client, employee, store, mock_notification_service):
        submitted = await client.post(
            f"{BASE}/requests",
            json={"new_email": "jane@newco.com", "reason": "company_change"},
            headers=bearer(employee),
        )
        token = sent_tokens(mock_notification_service)[EmailType.CURRENT]

        response = await client.post(
            f"{BASE}/verify",
            json={"token": token, "email_type": "current"},
            headers={"User-Agent": "M" * 600},
        )

        assert response.status_code == 200
        stored = await store.get(REQUESTS_COLLECTION, submitted.json()["request"]["id"])
        assert len(stored["user_agent"]) == 512

    @pytest.mark.asyncio
    async def test_renders_failure_with_error_status(self, client):
        response = await client.get(f"{BASE}/verify", params={"token": "x" * 64, "type": "new"})

        assert response.status_code >= 400
        assert "Verification failed" in response.text


class TestAccessControl:
    @pytest.mark.asyncio
    async def test_missing_bearer_token(self, client):
        response = await client.get(f"{BASE}/requests")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error_code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_member_cannot_submit_for_someone_else(self, client, employee, other_employee):
        response = await client.post(
            f"{BASE}/users/{other_employee.id}/requests",
            json={"new_email": "sam@newco.com", "reason": "company_change"},
            headers=bearer(employee),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_admin_submits_on_behalf(self, client, admin, other_employee):
        response = await client.post(
            f"{BASE}/users/{other_employee.id}/requests",
            json={"new_email": "sam@newco.com", "reason": "company_change"},
            headers=bearer(admin),
        )

        assert response.status_code == 201
        assert response.json()["request"]["user_id"] == other_employee.id

    @pytest.mark.asyncio
    async def test_member_cannot_approve(self, client, employee):
        response = await client.post(f"{BASE}/requests/anything/approve", headers=bearer(employee))

        assert response.status_code == 403
        assert response.json()["error_code"] == "INSUFFICIENT_APPROVAL_PERMISSIONS"


class TestErrorShape:
    @pytest.mark.asyncio
    async def test_malformed_body(self, client, employee):
        response = await client.post(f"{BASE}/requests", json={"reason": "company_change"}, headers=bearer(employee))

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_REQUEST_DATA"
        assert body["details"]["errors"]

    @pytest.mark.asyncio
    async def test_unknown_request(self, client, admin):
        response = await client.get(f"{BASE}/requests/missing", headers=bearer(admin))

        assert response.status_code == 404
        assert response.json() == {
            "error_code": "EMAIL_CHANGE_REQUEST_NOT_FOUND",
            "message": "Email change request not found",
            "details": None,
        }


class TestVerificationRateLimit:
    @pytest.fixture
    def limiter(self):
        limiter = get_limiter()
        previous = limiter.enabled
        limiter.enabled = True
        limiter.reset()
        yield limiter
        limiter.reset()
        limiter.enabled = previous

    @pytest.mark.asyncio
    async def test_verify_is_limited_per_client(self, client, limiter):
        payload = {"token": "y" * 64, "email_type": "current"}

        for _ in range(10):
            response = await client.post(f"{BASE}/verify", json=payload)
            assert response.status_code != 429

        response = await client.post(f"{BASE}/verify", json=payload)

        assert response.status_code == 429
        assert response.json()["error_code"] == "VERIFICATION_RATE_LIMITED"
