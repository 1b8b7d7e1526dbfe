"""
SQLAlchemy-backed grant store.

Works with any async driver SQLAlchemy supports; the default
DATABASE_URL uses aiosqlite. The unique constraint on user_id is the
final guard for the one-record-per-user invariant.
"""
from typing import List, Optional

from sqlalchemy import Column, DateTime, Integer, String, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.integrations.grant_store import WRITABLE_FIELDS, GrantStore, utcnow
from app.models.grant import GrantRecord
from app.utils.errors import StoreUnavailable
from app.utils.logger import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class GrantRow(Base):
    __tablename__ = "grants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), unique=True, nullable=False, index=True)
    grant_id = Column(String(255), nullable=False)
    email = Column(String(320), nullable=True)
    provider = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class SqlGrantStore(GrantStore):
    """Grant store on an async SQLAlchemy engine."""

    def __init__(self, database_url: str):
        self.engine = create_async_engine(database_url, echo=False)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_models(self) -> None:
        """Create the grants table if missing."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to initialise grant table: {e}")
            raise StoreUnavailable() from e

    async def close(self) -> None:
        await self.engine.dispose()

    async def _apply(self, session: AsyncSession, user_id: str, updates: dict) -> GrantRow:
        result = await session.execute(select(GrantRow).where(GrantRow.user_id == user_id))
        row = result.scalar_one_or_none()

        if row is None:
            row = GrantRow(user_id=user_id, **updates)
            session.add(row)
        else:
            for key, value in updates.items():
                setattr(row, key, value)
            row.updated_at = utcnow()

        await session.flush()
        return row

    async def upsert_by_user_id(self, user_id: str, fields: dict) -> GrantRecord:
        updates = {k: v for k, v in fields.items() if k in WRITABLE_FIELDS}
        try:
            async with self._session_factory() as session:
                try:
                    row = await self._apply(session, user_id, updates)
                    await session.commit()
                except IntegrityError:
                    # A concurrent insert for the same user won; update it instead
                    await session.rollback()
                    row = await self._apply(session, user_id, updates)
                    await session.commit()
                return GrantRecord.model_validate(row)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Grant upsert failed: {e}")
            raise StoreUnavailable() from e

    async def find_by_user_id(self, user_id: str) -> Optional[GrantRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(GrantRow).where(GrantRow.user_id == user_id))
                row = result.scalar_one_or_none()
                return GrantRecord.model_validate(row) if row else None
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Grant lookup failed: {e}")
            raise StoreUnavailable() from e

    async def delete_by_user_id(self, user_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(GrantRow).where(GrantRow.user_id == user_id))
                await session.commit()
                return result.rowcount > 0
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Grant delete failed: {e}")
            raise StoreUnavailable() from e

    async def list_all(self) -> List[GrantRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(GrantRow).order_by(GrantRow.id))
                return [GrantRecord.model_validate(row) for row in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Grant listing failed: {e}")
            raise StoreUnavailable() from e
