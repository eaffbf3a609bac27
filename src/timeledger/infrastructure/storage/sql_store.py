"""SQLAlchemy implementation of the document store.

Collections are backed by SQLModel tables (see
`timeledger.infrastructure.database.tables`). Conditions are compiled into
column expressions so that a conditional update is a single
``UPDATE ... WHERE`` statement whose row count tells whether it applied.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Type

from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import ColumnElement
from sqlmodel import SQLModel
from structlog import get_logger

from timeledger.core.exceptions import ConditionalCheckFailedError, DatabaseError
from timeledger.infrastructure.storage.base import IDocumentStore, plain_value
from timeledger.infrastructure.storage.query import (
    Condition,
    CursorPosition,
    Operator,
    Page,
    QuerySpec,
    encode_cursor,
)

logger = get_logger(__name__)

_COMPILERS: Dict[Operator, Callable[[Any, Any], ColumnElement]] = {
    Operator.EQ: lambda column, value: column == value,
    Operator.NE: lambda column, value: column != value,
    Operator.LT: lambda column, value: column < value,
    Operator.LE: lambda column, value: column <= value,
    Operator.GT: lambda column, value: column > value,
    Operator.GE: lambda column, value: column >= value,
    Operator.IN: lambda column, value: column.in_(value),
    Operator.NOT_IN: lambda column, value: column.not_in(value),
    Operator.IS_NULL: lambda column, _: column.is_(None),
    Operator.NOT_NULL: lambda column, _: column.is_not(None),
}


def _restore(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Row to item; naive timestamps (SQLite) are read back as UTC."""
    item = dict(row)
    for name, value in item.items():
        if isinstance(value, datetime) and value.tzinfo is None:
            item[name] = value.replace(tzinfo=timezone.utc)
    return item


class SqlDocumentStore(IDocumentStore):
    """`IDocumentStore` over an async SQLAlchemy session factory.

    Args:
        session_factory: Factory producing `AsyncSession` objects.
        tables: Collection name to SQLModel table class.
    """

    def __init__(self, session_factory: sessionmaker, tables: Mapping[str, Type[SQLModel]]):
        self._session_factory = session_factory
        self._tables = {name: model.__table__ for name, model in tables.items()}

    def _table(self, collection: str):
        try:
            return self._tables[collection]
        except KeyError:
            raise DatabaseError(f"Unknown collection: {collection}") from None

    def _compile(self, table, conditions: Sequence[Condition]) -> list:
        return [
            _COMPILERS[condition.operator](table.c[condition.field], plain_value(condition.value))
            for condition in conditions
        ]

    async def insert(self, collection: str, item: Mapping[str, Any]) -> None:
        table = self._table(collection)
        values = {name: plain_value(value) for name, value in item.items()}
        async with self._session_factory() as session:
            try:
                await session.execute(insert(table).values(**values))
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.info("document_insert_conflict", collection=collection, error=str(e.orig))
                raise ConditionalCheckFailedError(f"Insert into {collection} violates a unique constraint") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("document_insert_failed", collection=collection, error=str(e))
                raise DatabaseError() from e

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        table = self._table(collection)
        async with self._session_factory() as session:
            try:
                result = await session.execute(select(table).where(table.c[self.key_field] == key))
            except SQLAlchemyError as e:
                logger.error("document_get_failed", collection=collection, error=str(e))
                raise DatabaseError() from e
            row = result.mappings().first()
        return _restore(row) if row is not None else None

    async def update(
        self,
        collection: str,
        key: str,
        changes: Mapping[str, Any],
        conditions: Sequence[Condition] = (),
    ) -> Dict[str, Any]:
        table = self._table(collection)
        values = {name: plain_value(value) for name, value in changes.items()}
        statement = (
            update(table)
            .where(table.c[self.key_field] == key, *self._compile(table, conditions))
            .values(**values)
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(statement)
                if result.rowcount == 0:
                    await session.rollback()
                    raise ConditionalCheckFailedError(f"Conditional update of {key} in {collection} failed")
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConditionalCheckFailedError(f"Update of {key} violates a unique constraint") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("document_update_failed", collection=collection, error=str(e))
                raise DatabaseError() from e

        updated = await self.get(collection, key)
        if updated is None:
            raise ConditionalCheckFailedError(f"Item {key} vanished from {collection}")
        return updated

    async def query(self, spec: QuerySpec) -> Page:
        table = self._table(spec.collection)
        key_column = table.c[self.key_field]
        sort_column = table.c[spec.sort_by] if spec.sort_by else key_column

        statement = select(table).where(*self._compile(table, spec.conditions))
        if spec.after is not None:
            after_value = plain_value(spec.after.sort_value)
            if spec.descending:
                statement = statement.where(
                    or_(sort_column < after_value, and_(sort_column == after_value, key_column < spec.after.key))
                )
            else:
                statement = statement.where(
                    or_(sort_column > after_value, and_(sort_column == after_value, key_column > spec.after.key))
                )
        if spec.descending:
            statement = statement.order_by(sort_column.desc(), key_column.desc())
        else:
            statement = statement.order_by(sort_column.asc(), key_column.asc())
        if spec.limit is not None:
            statement = statement.limit(spec.limit + 1)

        async with self._session_factory() as session:
            try:
                result = await session.execute(statement)
            except SQLAlchemyError as e:
                logger.error("document_query_failed", collection=spec.collection, error=str(e))
                raise DatabaseError() from e
            items = [_restore(row) for row in result.mappings().all()]

        next_cursor = None
        if spec.limit is not None and len(items) > spec.limit:
            items = items[: spec.limit]
            last = items[-1]
            sort_name = spec.sort_by or self.key_field
            next_cursor = encode_cursor(CursorPosition(sort_value=last[sort_name], key=last[self.key_field]))
        return Page(items=items, next_cursor=next_cursor)

