from agenda.stores.base import AnyBlock, BlockStore, BookingStore, ConfigStore, OverrideStore
from agenda.stores.memory import MemoryStore
from agenda.stores.sql import SqlStore

__all__ = [
    "AnyBlock", "BlockStore", "BookingStore", "ConfigStore", "OverrideStore",
    "MemoryStore", "SqlStore",
]
