"""Process-wide slowapi limiter.

Only routes decorated with ``limiter.limit`` are limited; the key is the
client IP address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from timeledger.core.config.settings import settings

_limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def get_limiter() -> Limiter:
    """Return the shared limiter instance."""
    return _limiter
