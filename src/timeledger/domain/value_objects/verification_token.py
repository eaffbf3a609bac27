"""Verification Token Value Object.

Email-change verification tokens are bearer credentials: whoever holds an
unexpired token may verify the corresponding address. They carry no identity
and must be resolved through the repository, which only stores their SHA-256
hash.
"""

import hashlib
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

TOKEN_BYTES = 32
DEFAULT_EXPIRY_HOURS = 24

_TOKEN_PATTERN = re.compile(r"[a-f0-9]{64}")


def hash_token(value: str) -> str:
    """Return the storage form of a token (hex SHA-256 digest)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class VerificationToken:
    """Value object representing one issued verification token.

    Attributes:
        value: 64 lowercase hex characters (32 random bytes).
        expires_at: Instant after which the token is no longer accepted.
    """

    value: str = field(repr=False)
    expires_at: datetime

    def __post_init__(self):
        if not self.is_valid_format(self.value):
            raise ValueError("Verification token must be 64 lowercase hex characters")

    @classmethod
    def generate(
        cls, now: Optional[datetime] = None, expiry_hours: int = DEFAULT_EXPIRY_HOURS
    ) -> "VerificationToken":
        """Generate a new cryptographically secure token.

        Args:
            now: Issuance instant (defaults to the current UTC time).
            expiry_hours: Lifetime of the token.

        Returns:
            VerificationToken: Fresh token expiring ``expiry_hours`` after ``now``.
        """
        issued_at = now or datetime.now(timezone.utc)
        token = cls(
            value=secrets.token_bytes(TOKEN_BYTES).hex(),
            expires_at=issued_at + timedelta(hours=expiry_hours),
        )
        logger.debug("Verification token generated", token_prefix=token.value[:8])
        return token

    @staticmethod
    def is_valid_format(value: Optional[str]) -> bool:
        """Check that a string is exactly 64 lowercase hex characters."""
        return isinstance(value, str) and bool(_TOKEN_PATTERN.fullmatch(value))

    @property
    def hashed(self) -> str:
        return hash_token(self.value)

    def matches(self, stored_hash: Optional[str]) -> bool:
        """Constant-time comparison of this token against a stored hash."""
        if not stored_hash:
            return False
        return secrets.compare_digest(self.hashed, stored_hash)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return is_expired(self.expires_at, now)

    def __str__(self) -> str:
        return f"{self.value[:8]}..."


def is_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """Strict expiry check: a token is expired only once ``now > expires_at``."""
    check_time = now or datetime.now(timezone.utc)
    return check_time > expires_at
