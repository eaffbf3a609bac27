import pytest

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.core.handlers import error_body


class TestEmailChangeError:
    @pytest.mark.parametrize("code", list(EmailChangeErrorCode))
    def test_every_code_has_a_status_and_message(self, code):
        error = EmailChangeError(code)

        assert 400 <= error.status_code < 600
        assert error.message
        assert error.code == code.value

    def test_overrides(self):
        error = EmailChangeError(
            EmailChangeErrorCode.INVALID_VERIFICATION_TOKEN,
            "Malformed token",
            status_code=400,
            details={"field": "token"},
        )

        assert (error.status_code, error.message, error.details) == (400, "Malformed token", {"field": "token"})

    def test_status_mapping(self):
        assert EmailChangeError(EmailChangeErrorCode.EMAIL_CHANGE_REQUEST_NOT_FOUND).status_code == 404
        assert EmailChangeError(EmailChangeErrorCode.ACTIVE_REQUEST_EXISTS).status_code == 409
        assert EmailChangeError(EmailChangeErrorCode.VERIFICATION_TOKEN_EXPIRED).status_code == 410
        assert EmailChangeError(EmailChangeErrorCode.VERIFICATION_RATE_LIMITED).status_code == 429


def test_error_body_shape():
    assert error_body("FORBIDDEN", "No") == {"error_code": "FORBIDDEN", "message": "No", "details": None}
