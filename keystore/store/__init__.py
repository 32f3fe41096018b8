"""Durable store (the relational tier)."""

from keystore.store.database import DurableStore
from keystore.store.schema import KEY_LENGTH, build_entry_table

__all__ = ["DurableStore", "KEY_LENGTH", "build_entry_table"]
