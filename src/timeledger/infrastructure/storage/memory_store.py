"""In-process document store for the test-suite.

It honours the same contract as the SQL store: unique fields, conditional
updates and keyset pagination. There is no lock; every method runs without
awaiting, so each call completes on the event loop before another starts.
The store is not safe to share between threads.
"""

import copy
from collections import defaultdict
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from timeledger.core.exceptions import ConditionalCheckFailedError
from timeledger.infrastructure.storage.base import IDocumentStore, plain_value
from timeledger.infrastructure.storage.query import (
    Condition,
    CursorPosition,
    Operator,
    Page,
    QuerySpec,
    encode_cursor,
)

_COMPARATORS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: lambda actual, expected: actual == expected,
    Operator.NE: lambda actual, expected: actual != expected,
    Operator.LT: lambda actual, expected: actual is not None and actual < expected,
    Operator.LE: lambda actual, expected: actual is not None and actual <= expected,
    Operator.GT: lambda actual, expected: actual is not None and actual > expected,
    Operator.GE: lambda actual, expected: actual is not None and actual >= expected,
    Operator.IN: lambda actual, expected: actual in expected,
    Operator.NOT_IN: lambda actual, expected: actual not in expected,
    Operator.IS_NULL: lambda actual, _: actual is None,
    Operator.NOT_NULL: lambda actual, _: actual is not None,
}


def _satisfies(item: Mapping[str, Any], conditions: Sequence[Condition]) -> bool:
    return all(
        _COMPARATORS[condition.operator](item.get(condition.field), plain_value(condition.value))
        for condition in conditions
    )


class InMemoryDocumentStore(IDocumentStore):
    """Dictionary-backed `IDocumentStore`.

    Args:
        unique_fields: Per collection, fields whose non-null values must be
            unique (mirrors the unique constraints of the SQL schema).
    """

    def __init__(self, unique_fields: Optional[Mapping[str, Sequence[str]]] = None):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._unique_fields = {name: tuple(fields) for name, fields in (unique_fields or {}).items()}

    async def insert(self, collection: str, item: Mapping[str, Any]) -> None:
        items = self._collections[collection]
        stored = {name: plain_value(value) for name, value in item.items()}
        key = stored[self.key_field]
        if key in items:
            raise ConditionalCheckFailedError(f"Item {key} already exists in {collection}")
        for unique_field in self._unique_fields.get(collection, ()):
            value = stored.get(unique_field)
            if value is not None and any(other.get(unique_field) == value for other in items.values()):
                raise ConditionalCheckFailedError(f"Duplicate value for unique field {unique_field}")
        items[key] = copy.deepcopy(stored)

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        item = self._collections[collection].get(key)
        return copy.deepcopy(item) if item is not None else None

    async def update(
        self,
        collection: str,
        key: str,
        changes: Mapping[str, Any],
        conditions: Sequence[Condition] = (),
    ) -> Dict[str, Any]:
        item = self._collections[collection].get(key)
        if item is None or not _satisfies(item, conditions):
            raise ConditionalCheckFailedError(f"Conditional update of {key} in {collection} failed")
        item.update({name: copy.deepcopy(plain_value(value)) for name, value in changes.items()})
        return copy.deepcopy(item)

    async def query(self, spec: QuerySpec) -> Page:
        sort_by = spec.sort_by or self.key_field

        def sort_key(item: Mapping[str, Any]):
            return (item.get(sort_by), item[self.key_field])

        matches = [item for item in self._collections[spec.collection].values() if _satisfies(item, spec.conditions)]
        matches.sort(key=sort_key, reverse=spec.descending)

        if spec.after is not None:
            boundary = (plain_value(spec.after.sort_value), spec.after.key)
            if spec.descending:
                matches = [item for item in matches if sort_key(item) < boundary]
            else:
                matches = [item for item in matches if sort_key(item) > boundary]

        next_cursor = None
        if spec.limit is not None and len(matches) > spec.limit:
            matches = matches[: spec.limit]
            last = matches[-1]
            next_cursor = encode_cursor(CursorPosition(sort_value=last.get(sort_by), key=last[self.key_field]))

        return Page(items=[copy.deepcopy(item) for item in matches], next_cursor=next_cursor)
