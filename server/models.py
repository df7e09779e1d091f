"""
Data models for the data service.
Domain objects only — no persistence or API logic.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# ---------- Record ----------
@dataclass(frozen=True)
class Record:
    """One row of tbl_test. id is assigned by the database."""
    id: int
    data: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data}
