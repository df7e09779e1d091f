"""
Repository interface for records.
Read-only: nothing in the service updates or deletes rows.
"""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from server.models import Record

from .schema import tbl_test


class RecordRepository:
    """Reads from tbl_test."""

    def list_all(self, conn: Connection) -> list[Record]:
        rows = conn.execute(select(tbl_test.c.id, tbl_test.c.data).order_by(tbl_test.c.id))
        return [Record(id=r.id, data=r.data) for r in rows]

    def count(self, conn: Connection) -> int:
        return conn.execute(select(func.count()).select_from(tbl_test)).scalar_one()
