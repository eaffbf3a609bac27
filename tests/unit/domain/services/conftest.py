import pytest

from timeledger.domain.services.email_change import (
    ApproveEmailChangeService,
    CancelEmailChangeService,
    GetEmailChangeService,
    ListEmailChangeService,
    ProcessEmailChangeService,
    RejectEmailChangeService,
    ResendVerificationService,
    SubmitEmailChangeService,
    VerifyEmailChangeService,
)


@pytest.fixture
def collaborators(email_change_repository, user_repository, mock_notification_service, clock):
    return dict(
        email_change_repository=email_change_repository,
        user_repository=user_repository,
        notification_service=mock_notification_service,
        clock=clock,
    )


@pytest.fixture
def submit_service(collaborators):
    return SubmitEmailChangeService(**collaborators)


@pytest.fixture
def verify_service(collaborators):
    return VerifyEmailChangeService(**collaborators)


@pytest.fixture
def resend_service(collaborators):
    return ResendVerificationService(**collaborators)


@pytest.fixture
def approve_service(collaborators):
    return ApproveEmailChangeService(**collaborators)


@pytest.fixture
def reject_service(collaborators):
    return RejectEmailChangeService(**collaborators)


@pytest.fixture
def cancel_service(collaborators):
    return CancelEmailChangeService(**collaborators)


@pytest.fixture
def process_service(collaborators):
    return ProcessEmailChangeService(**collaborators)


@pytest.fixture
def list_service(collaborators):
    return ListEmailChangeService(**collaborators)


@pytest.fixture
def detail_service(collaborators):
    return GetEmailChangeService(**collaborators)
