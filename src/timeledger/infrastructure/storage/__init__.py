from .base import IDocumentStore
from .memory_store import InMemoryDocumentStore
from .query import Condition, CursorPosition, Operator, Page, QuerySpec, decode_cursor, encode_cursor
from .sql_store import SqlDocumentStore

__all__ = [
    "Condition",
    "CursorPosition",
    "IDocumentStore",
    "InMemoryDocumentStore",
    "Operator",
    "Page",
    "QuerySpec",
    "SqlDocumentStore",
    "decode_cursor",
    "encode_cursor",
]
