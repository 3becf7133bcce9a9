"""
Database module - the persistence port and its implementations.

Routes receive the store through the get_store dependency; tests override
it with a fresh InMemoryStore.
"""
from functools import lru_cache

from siwes_portal.core.config import get_settings
from siwes_portal.db.memory import InMemoryStore
from siwes_portal.db.store import Store


@lru_cache()
def build_store() -> Store:
    """Create the configured store once per process."""
    backend = get_settings().storage_backend.lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "postgres":
        from siwes_portal.db.postgres import SqlStore
        return SqlStore()
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}' (expected postgres or memory)")


def get_store() -> Store:
    """FastAPI dependency for the active store."""
    return build_store()


__all__ = [
    "InMemoryStore",
    "Store",
    "build_store",
    "get_store",
]
