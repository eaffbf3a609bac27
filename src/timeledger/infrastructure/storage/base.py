from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from timeledger.infrastructure.storage.query import Condition, Page, QuerySpec


class IDocumentStore(ABC):
    """Generic key/value store with indexed queries.

    Items are flat dictionaries keyed by ``"id"``. Every write is atomic for a
    single item; there are no cross-item transactions.
    """

    key_field = "id"

    @abstractmethod
    async def insert(self, collection: str, item: Mapping[str, Any]) -> None:
        """Store a new item.

        Raises:
            ConditionalCheckFailedError: The key or a unique field is taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def update(
        self,
        collection: str,
        key: str,
        changes: Mapping[str, Any],
        conditions: Sequence[Condition] = (),
    ) -> Dict[str, Any]:
        """Apply ``changes`` if the item exists and satisfies ``conditions``.

        Returns:
            The updated item.

        Raises:
            ConditionalCheckFailedError: The item is missing or a condition
                does not hold; nothing is written.
        """
        raise NotImplementedError

    @abstractmethod
    async def query(self, spec: QuerySpec) -> Page:
        raise NotImplementedError


def plain_value(value: Any) -> Any:
    """Storage form of a value: enums are stored by value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(plain_value(v) for v in value)
    return value
