"""
Persistence layer for records.
No business logic — only the pool, the migration and read interfaces.
"""
from .db import dispose_engine, get_connection, get_engine, init_db
from .repositories import RecordRepository

__all__ = [
    "get_engine",
    "dispose_engine",
    "get_connection",
    "init_db",
    "RecordRepository",
]
