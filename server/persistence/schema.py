"""
Schema for the data table.
On MySQL this renders as tbl_test(id INT AUTO_INCREMENT PRIMARY KEY, data VARCHAR(255)).
"""
from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table

TABLE_NAME = "tbl_test"

metadata = MetaData()

tbl_test = Table(
    TABLE_NAME,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("data", String(255)),
)

# Inserted once, in the transaction that creates the table
SEED_ROWS: tuple[str, ...] = (
    "Hello from MySQL",
    "Served by the API tier",
    "Rendered by the client",
)
