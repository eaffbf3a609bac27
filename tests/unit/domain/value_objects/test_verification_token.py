"""Tests for the VerificationToken value object."""

from datetime import datetime, timedelta, timezone

import pytest

from timeledger.domain.value_objects.verification_token import VerificationToken, hash_token, is_expired

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestVerificationTokenGeneration:
    def test_generate_produces_64_lowercase_hex_chars(self):
        token = VerificationToken.generate(NOW)

        assert len(token.value) == 64
        assert VerificationToken.is_valid_format(token.value)

    def test_generate_sets_expiry_from_now(self):
        token = VerificationToken.generate(NOW, expiry_hours=6)

        assert token.expires_at == NOW + timedelta(hours=6)

    def test_generated_tokens_are_unique(self):
        values = {VerificationToken.generate(NOW).value for _ in range(50)}

        assert len(values) == 50

    def test_str_does_not_leak_full_value(self):
        token = VerificationToken.generate(NOW)

        assert str(token) == f"{token.value[:8]}..."
        assert token.value not in repr(token)


class TestVerificationTokenFormat:
    @pytest.mark.parametrize(
        "value",
        [
            "",
            "abc",
            "A" * 64,
            "g" * 64,
            "a" * 63,
            "a" * 65,
            "a" * 64 + "\n",
            None,
        ],
    )
    def test_invalid_formats_are_rejected(self, value):
        assert VerificationToken.is_valid_format(value) is False

    def test_constructor_rejects_malformed_value(self):
        with pytest.raises(ValueError):
            VerificationToken(value="not-a-token", expires_at=NOW)


class TestVerificationTokenMatching:
    def test_matches_its_own_hash(self):
        token = VerificationToken.generate(NOW)

        assert token.hashed == hash_token(token.value)
        assert token.matches(token.hashed) is True

    def test_does_not_match_other_hash_or_empty(self):
        token = VerificationToken.generate(NOW)
        other = VerificationToken.generate(NOW)

        assert token.matches(other.hashed) is False
        assert token.matches(None) is False
        assert token.matches("") is False


class TestExpiry:
    def test_not_expired_exactly_at_expiry(self):
        assert is_expired(NOW, now=NOW) is False

    def test_expired_one_second_after(self):
        assert is_expired(NOW, now=NOW + timedelta(seconds=1)) is True

    def test_token_is_expired_uses_its_expiry(self):
        token = VerificationToken.generate(NOW, expiry_hours=1)

        assert token.is_expired(NOW + timedelta(minutes=59)) is False
        assert token.is_expired(NOW + timedelta(hours=1, seconds=1)) is True
