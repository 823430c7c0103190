from .engine import Base, get_engine, init_db  # noqa: F401
from .repository import RowNotFoundError, StoreError, TableStore  # noqa: F401

__all__ = [
    "Base",
    "get_engine",
    "init_db",
    "TableStore",
    "StoreError",
    "RowNotFoundError",
]
