"""
Grant storage.

A grant store is a durable mapping user_id -> GrantRecord with exactly
one record per user_id. Two backends:
1. InMemoryGrantStore - single process, used in tests and demos
2. SqlGrantStore - SQLAlchemy (see sql_grant_store.py)

Stores raise StoreUnavailable on connectivity loss; they never return
partial records.
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from app.config import Settings
from app.models.grant import GrantRecord
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Fields callers may set; timestamps are managed by the store
WRITABLE_FIELDS = ("grant_id", "email", "provider")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GrantStore(ABC):
    """Keyed grant persistence."""

    @abstractmethod
    async def upsert_by_user_id(self, user_id: str, fields: dict) -> GrantRecord:
        """
        Create or update the record for user_id in one atomic step.

        Keys of `fields` not present leave the stored value untouched.
        """

    @abstractmethod
    async def find_by_user_id(self, user_id: str) -> Optional[GrantRecord]:
        ...

    @abstractmethod
    async def delete_by_user_id(self, user_id: str) -> bool:
        """Return True iff a record was removed."""

    @abstractmethod
    async def list_all(self) -> List[GrantRecord]:
        ...

    async def close(self) -> None:
        """Release connections (no-op by default)."""


class InMemoryGrantStore(GrantStore):
    """
    Dict-backed store.

    The lock makes read-modify-write atomic within one event loop, so
    concurrent upserts for the same user are last-writer-wins.
    """

    def __init__(self):
        self._records: dict[str, GrantRecord] = {}
        self._lock = asyncio.Lock()

    async def upsert_by_user_id(self, user_id: str, fields: dict) -> GrantRecord:
        updates = {k: v for k, v in fields.items() if k in WRITABLE_FIELDS}
        async with self._lock:
            now = utcnow()
            existing = self._records.get(user_id)
            if existing:
                record = existing.model_copy(update={**updates, "updated_at": now})
            else:
                record = GrantRecord(user_id=user_id, created_at=now, updated_at=now, **updates)
            self._records[user_id] = record
        return record.model_copy()

    async def find_by_user_id(self, user_id: str) -> Optional[GrantRecord]:
        record = self._records.get(user_id)
        return record.model_copy() if record else None

    async def delete_by_user_id(self, user_id: str) -> bool:
        async with self._lock:
            return self._records.pop(user_id, None) is not None

    async def list_all(self) -> List[GrantRecord]:
        return [r.model_copy() for r in self._records.values()]


def build_grant_store(settings: Settings) -> GrantStore:
    """Create the store selected by GRANT_STORE_BACKEND."""
    backend = settings.grant_store_backend.lower()

    if backend == "memory":
        logger.info("Using in-memory grant store")
        return InMemoryGrantStore()

    if backend == "sql":
        from app.integrations.sql_grant_store import SqlGrantStore

        logger.info("Using SQL grant store")
        return SqlGrantStore(settings.database_url)

    raise ValueError(f"Unknown grant store backend: {settings.grant_store_backend}")
