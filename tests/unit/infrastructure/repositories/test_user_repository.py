"""Tests for the SQLAlchemy UserRepository (SQLite via aiosqlite)."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.infrastructure.repositories import UserRepository

from tests.factories.user import create_fake_user


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def user_repo(session_factory):
    async with session_factory() as session:
        session.add(create_fake_user(id="u1", name="Jane Doe", email="Jane@Acme.com"))
        session.add(create_fake_user(id="u2", email="sam@acme.com"))
        await session.commit()
    return UserRepository(session_factory)


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_get_by_id(self, user_repo):
        user = await user_repo.get_by_id("u1")

        assert user.name == "Jane Doe"
        assert user.display_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, user_repo):
        assert await user_repo.get_by_id("nobody") is None

    @pytest.mark.asyncio
    async def test_get_by_email_ignores_case(self, user_repo):
        user = await user_repo.get_by_email(" jane@acme.COM ")

        assert user.id == "u1"

    @pytest.mark.asyncio
    async def test_update_email(self, user_repo):
        updated = await user_repo.update_email("u1", "jane.doe@acme.com")

        assert updated.email == "jane.doe@acme.com"
        assert updated.updated_at is not None
        assert (await user_repo.get_by_email("jane.doe@acme.com")).id == "u1"

    @pytest.mark.asyncio
    async def test_update_email_of_missing_user(self, user_repo):
        with pytest.raises(EmailChangeError) as exc_info:
            await user_repo.update_email("nobody", "x@acme.com")

        assert exc_info.value.error_code is EmailChangeErrorCode.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_email_to_taken_address(self, user_repo):
        with pytest.raises(EmailChangeError) as exc_info:
            await user_repo.update_email("u1", "sam@acme.com")

        assert exc_info.value.error_code is EmailChangeErrorCode.EMAIL_ALREADY_EXISTS
