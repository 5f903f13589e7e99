"""
Storage layer: redundant key/value tiers behind one PersistentStore.
"""

from .backends import JsonFileBackend, MemoryBackend, StorageBackend
from .store import (
    AUTH_FLOW_KEY,
    KindPolicy,
    LEGACY_PROGRESS_PREFIX,
    PersistentStore,
    StorageKind,
    StoredRecord,
    make_key,
)

__all__ = [
    "AUTH_FLOW_KEY",
    "JsonFileBackend",
    "KindPolicy",
    "LEGACY_PROGRESS_PREFIX",
    "MemoryBackend",
    "PersistentStore",
    "StorageBackend",
    "StorageKind",
    "StoredRecord",
    "make_key",
]
