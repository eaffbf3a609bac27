"""Tests for SqlDocumentStore against an SQLite database (aiosqlite)."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from timeledger.core.exceptions import ConditionalCheckFailedError, DatabaseError
from timeledger.infrastructure.database.tables import (
    AUDIT_LOGS_COLLECTION,
    REQUESTS_COLLECTION,
    EmailChangeAuditLogRecord,
    EmailChangeRequestRecord,
)
from timeledger.infrastructure.storage import Condition, QuerySpec, SqlDocumentStore, decode_cursor

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    session_factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield SqlDocumentStore(
        session_factory,
        {
            REQUESTS_COLLECTION: EmailChangeRequestRecord,
            AUDIT_LOGS_COLLECTION: EmailChangeAuditLogRecord,
        },
    )
    await engine.dispose()


def request_item(item_id: str, user_id: str = "user-1", **overrides):
    item = {
        "id": item_id,
        "user_id": user_id,
        "current_email": "jane@acme.com",
        "new_email": "jane.doe@acme.com",
        "status": "pending_verification",
        "reason": "personal_preference",
        "current_email_token_hash": "a" * 64,
        "new_email_token_hash": "b" * 64,
        "verification_tokens_expires_at": NOW + timedelta(hours=24),
        "requested_at": NOW,
        "active_key": user_id,
    }
    item.update(overrides)
    return item


class TestSqlDocumentStore:
    @pytest.mark.asyncio
    async def test_insert_and_get_restore_utc_timestamps(self, sql_store):
        await sql_store.insert(REQUESTS_COLLECTION, request_item("req-1"))

        item = await sql_store.get(REQUESTS_COLLECTION, "req-1")

        assert item["user_id"] == "user-1"
        assert item["requested_at"] == NOW
        assert item["requested_at"].tzinfo is not None

    @pytest.mark.asyncio
    async def test_active_key_is_unique(self, sql_store):
        await sql_store.insert(REQUESTS_COLLECTION, request_item("req-1"))

        with pytest.raises(ConditionalCheckFailedError):
            await sql_store.insert(REQUESTS_COLLECTION, request_item("req-2"))

    @pytest.mark.asyncio
    async def test_null_active_keys_do_not_collide(self, sql_store):
        await sql_store.insert(REQUESTS_COLLECTION, request_item("req-1", active_key=None, status="cancelled"))
        await sql_store.insert(REQUESTS_COLLECTION, request_item("req-2", active_key=None, status="rejected"))

        page = await sql_store.query(QuerySpec(collection=REQUESTS_COLLECTION))

        assert len(page.items) == 2

    @pytest.mark.asyncio
    async def test_conditional_update(self, sql_store):
        await sql_store.insert(REQUESTS_COLLECTION, request_item("req-1"))

        updated = await sql_store.update(
            REQUESTS_COLLECTION,
            "req-1",
            {"status": "cancelled", "active_key": None},
            [Condition.in_("status", ["pending_verification", "pending_approval"])],
        )
        with pytest.raises(ConditionalCheckFailedError):
            await sql_store.update(
                REQUESTS_COLLECTION,
                "req-1",
                {"status": "approved"},
                [Condition.eq("status", "pending_approval")],
            )

        assert updated["status"] == "cancelled"
        assert updated["active_key"] is None
        assert (await sql_store.get(REQUESTS_COLLECTION, "req-1"))["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_keyset_pagination(self, sql_store):
        for index in range(3):
            await sql_store.insert(
                REQUESTS_COLLECTION,
                request_item(f"req-{index}", user_id=f"user-{index}", requested_at=NOW + timedelta(minutes=index)),
            )

        first = await sql_store.query(
            QuerySpec(collection=REQUESTS_COLLECTION, sort_by="requested_at", descending=True, limit=2)
        )
        second = await sql_store.query(
            QuerySpec(
                collection=REQUESTS_COLLECTION,
                sort_by="requested_at",
                descending=True,
                limit=2,
                after=decode_cursor(first.next_cursor),
            )
        )

        assert [item["id"] for item in first.items] == ["req-2", "req-1"]
        assert [item["id"] for item in second.items] == ["req-0"]
        assert second.next_cursor is None

    @pytest.mark.asyncio
    async def test_json_details_round_trip(self, sql_store):
        await sql_store.insert(
            AUDIT_LOGS_COLLECTION,
            {
                "id": "log-1",
                "request_id": "req-1",
                "action": "approved",
                "performed_by": "system",
                "performed_at": NOW,
                "details": {"auto_approval": True},
            },
        )

        page = await sql_store.query(
            QuerySpec(collection=AUDIT_LOGS_COLLECTION, conditions=(Condition.eq("request_id", "req-1"),))
        )

        assert page.items[0]["details"] == {"auto_approval": True}

    @pytest.mark.asyncio
    async def test_unknown_collection(self, sql_store):
        with pytest.raises(DatabaseError):
            await sql_store.get("unknown", "x")
