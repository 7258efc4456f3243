from .base import Store
from .memory_store import MemoryStore
from .sql_store import SqlStore

__all__ = ["MemoryStore", "SqlStore", "Store"]
