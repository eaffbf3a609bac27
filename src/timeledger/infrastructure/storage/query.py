"""Storage-agnostic query builder.

Repositories describe what they need as lists of `Condition` values; each
document-store adapter compiles them to its native form (SQL expressions,
Python predicates). Pagination uses an opaque cursor: the base64 encoded JSON
of the last returned item's sort value and key.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode


class Operator(str, Enum):
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"


@dataclass(frozen=True)
class Condition:
    """One ``field <operator> value`` predicate."""

    field: str
    operator: Operator
    value: Any = None

    @classmethod
    def eq(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, Operator.EQ, value)

    @classmethod
    def in_(cls, field_name: str, values: Sequence[Any]) -> "Condition":
        return cls(field_name, Operator.IN, tuple(values))

    @classmethod
    def not_in(cls, field_name: str, values: Sequence[Any]) -> "Condition":
        return cls(field_name, Operator.NOT_IN, tuple(values))

    @classmethod
    def ge(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, Operator.GE, value)


@dataclass(frozen=True)
class CursorPosition:
    """Keyset position: sort value and key of the last item of a page."""

    sort_value: Any
    key: str


@dataclass(frozen=True)
class QuerySpec:
    collection: str
    conditions: Tuple[Condition, ...] = ()
    sort_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    after: Optional[CursorPosition] = None


@dataclass
class Page:
    items: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None


def encode_cursor(position: CursorPosition) -> str:
    value = position.sort_value
    if isinstance(value, datetime):
        payload = {"v": value.isoformat(), "t": "datetime", "k": position.key}
    elif isinstance(value, Enum):
        payload = {"v": value.value, "t": "str", "k": position.key}
    else:
        payload = {"v": value, "t": "str", "k": position.key}
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str) -> CursorPosition:
    """Decode an opaque cursor.

    Raises:
        EmailChangeError: INVALID_REQUEST_DATA when the cursor is malformed.
    """
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        value = payload["v"]
        if payload.get("t") == "datetime":
            value = datetime.fromisoformat(value)
        return CursorPosition(sort_value=value, key=str(payload["k"]))
    except (ValueError, KeyError, TypeError, binascii.Error, UnicodeEncodeError) as exc:
        raise EmailChangeError(
            EmailChangeErrorCode.INVALID_REQUEST_DATA, "Invalid pagination cursor"
        ) from exc
