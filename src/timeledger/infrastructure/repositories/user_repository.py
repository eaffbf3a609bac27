"""User Repository implementation using SQLAlchemy.

Provides the `IUserRepository` port over the `users` table. Email lookups are
case-insensitive; the profile email update is the last step of processing an
approved email-change request.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from structlog import get_logger

from timeledger.core.exceptions import DatabaseError, EmailChangeError, EmailChangeErrorCode
from timeledger.core.logging import mask_email
from timeledger.domain.entities.user import User
from timeledger.domain.interfaces.repositories import IUserRepository

logger = get_logger(__name__)


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of `IUserRepository`.

    Each call opens its own short-lived session from the injected factory, so
    one repository instance can be shared for the lifetime of the process.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID.

        Args:
            user_id: Identifier of the user.

        Returns:
            User entity if found, None otherwise
        """
        try:
            async with self._session_factory() as session:
                user = await session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Error retrieving user by ID", user_id=user_id, error=str(e), operation="get_by_id")
            raise DatabaseError() from e

        logger.debug("User lookup by ID completed", user_id=user_id, found=user is not None)
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address, ignoring case."""
        statement = select(User).where(func.lower(User.email) == email.strip().lower())
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                user = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(
                "Error retrieving user by email",
                email=mask_email(email),
                error=str(e),
                operation="get_by_email",
            )
            raise DatabaseError() from e

        logger.debug("User lookup by email completed", email=mask_email(email), found=user is not None)
        return user

    async def update_email(self, user_id: str, email: str) -> User:
        """Replace the email address stored on the user profile.

        Raises:
            EmailChangeError: USER_NOT_FOUND when the user does not exist,
                EMAIL_ALREADY_EXISTS when another profile holds the address.
        """
        async with self._session_factory() as session:
            try:
                user = await session.get(User, user_id)
                if user is None:
                    raise EmailChangeError(EmailChangeErrorCode.USER_NOT_FOUND)
                user.email = email
                user.updated_at = datetime.now(timezone.utc)
                session.add(user)
                await session.commit()
                await session.refresh(user)
            except IntegrityError as e:
                await session.rollback()
                logger.warning("Profile email already taken", user_id=user_id, email=mask_email(email))
                raise EmailChangeError(EmailChangeErrorCode.EMAIL_ALREADY_EXISTS) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Error updating user email", user_id=user_id, error=str(e), operation="update_email")
                raise DatabaseError() from e

        logger.info("User email updated", user_id=user_id, email=mask_email(email))
        return user
