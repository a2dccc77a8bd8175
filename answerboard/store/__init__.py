"""Row store adapters: A1 addressing, in-memory and PostgreSQL backends, properties."""

from .properties import MemoryPropertyStore, PostgresPropertyStore, PropertyStore
from .row_store import CellWrite, MemoryRowStore, RowStore, RowStoreError, SheetNotFoundError

__all__ = [
    "CellWrite",
    "MemoryRowStore",
    "RowStore",
    "RowStoreError",
    "SheetNotFoundError",
    "MemoryPropertyStore",
    "PostgresPropertyStore",
    "PropertyStore",
]
