"""Table definition for durable records."""

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.dialects import mysql

KEY_LENGTH = 255

# Byte-wise comparison: keys differing in case or trailing spaces are distinct
MYSQL_KEY_COLLATION = "utf8mb4_bin"

KEY_TYPE = String(KEY_LENGTH).with_variant(
    mysql.VARCHAR(KEY_LENGTH, charset="utf8mb4", collation=MYSQL_KEY_COLLATION),
    "mysql",
    "mariadb",
)


def build_entry_table(name: str, metadata: MetaData | None = None) -> Table:
    """
    Build the key-value table.

    Columns:
        id: surrogate autoincrement primary key
        entry_key: unique key, at most KEY_LENGTH characters, compared exactly
        entry_value: opaque text value

    The table name is configurable, so the table is built per store
    instead of being declared once at import time.
    """
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("entry_key", KEY_TYPE, nullable=False, unique=True),
        Column("entry_value", Text, nullable=True),
    )
