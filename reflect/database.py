"""
Async SQLAlchemy persistence layer.

`Store` is the transactional datastore every repository talks to. Writes are
serialized through a single lock, reads run concurrently, and every SQLAlchemy
failure leaves this module as a `StoreError`.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, event, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import get_settings
from .errors import ConstraintError, StoreError
from .logging_config import store_logger

Base = declarative_base()

R = TypeVar("R")

IN_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Store:
    """Transactional, queryable local datastore."""

    def __init__(self, database_url: str, *, echo: bool = False, foreign_keys: bool = True, **engine_kwargs):
        self.database_url = database_url
        self.engine = create_async_engine(database_url, echo=echo, **engine_kwargs)
        if foreign_keys and self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings=None) -> "Store":
        settings = settings or get_settings()
        return cls(
            settings.database_url,
            echo=settings.echo_sql,
            foreign_keys=settings.sqlite_foreign_keys,
        )

    @classmethod
    def in_memory(cls, *, foreign_keys: bool = True) -> "Store":
        """Isolated store with no disk state; one shared connection."""
        return cls(
            IN_MEMORY_URL,
            foreign_keys=foreign_keys,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # ── Lifecycle ─────────────────────────────────────────────

    async def create_all(self) -> None:
        # Register every mapped table before creating the schema
        from . import models  # noqa: F401

        async with self._guard("create_all"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self._guard("drop_all"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)

    async def reset(self) -> None:
        """Drop and recreate the schema, removing all data."""
        await self.drop_all()
        await self.create_all()
        store_logger.info("Store reset", url=self.database_url)

    async def dispose(self) -> None:
        await self.engine.dispose()

    # ── Sessions ──────────────────────────────────────────────

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as e:
            store_logger.warning("Constraint violation", operation=operation, cause=str(e.orig))
            raise ConstraintError(
                f"Constraint violated during {operation}: {e.orig}",
                details={"operation": operation},
            ) from e
        except SQLAlchemyError as e:
            store_logger.error("Store operation failed", error=e, operation=operation)
            raise StoreError(f"Failed to {operation}: {e}", details={"operation": operation}) from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Read session. Nothing is committed."""
        async with self._guard("read"):
            async with self.session_factory() as session:
                yield session

    @asynccontextmanager
    async def transaction(self, operation: str = "write") -> AsyncIterator[AsyncSession]:
        """Write session: serialized, committed on success, rolled back on any error."""
        async with self._write_lock:
            async with self._guard(operation):
                async with self.session_factory() as session:
                    try:
                        yield session
                        await session.commit()
                    except BaseException:
                        await session.rollback()
                        raise

    # ── Primitives ────────────────────────────────────────────

    async def add(self, record: R) -> R:
        async with self.transaction("create") as session:
            session.add(record)
        return record

    async def add_all(self, records: Iterable[Any]) -> List[Any]:
        records = list(records)
        async with self.transaction("create batch") as session:
            session.add_all(records)
        return records

    async def fetch_by_id(self, model: Type[R], id: Any, options: Sequence[Any] = ()) -> Optional[R]:
        async with self.session() as session:
            return await session.get(model, id, options=list(options))

    async def fetch_all(self, model: Type[R], order_by: Sequence[Any] = (), options: Sequence[Any] = ()) -> List[R]:
        return await self.fetch(model, order_by=order_by, options=options)

    async def fetch(
        self,
        model: Type[R],
        *criteria: Any,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        options: Sequence[Any] = (),
    ) -> List[R]:
        stmt = select(model)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        if options:
            stmt = stmt.options(*options)
        async with self.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().unique().all())

    async def count(self, model: Type[Any], *criteria: Any) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int(await self.scalar(stmt) or 0)

    async def scalar(self, stmt: Any) -> Any:
        async with self.session() as session:
            return await session.scalar(stmt)

    async def rows(self, stmt: Any) -> List[Any]:
        async with self.session() as session:
            result = await session.execute(stmt)
            return list(result.all())

    async def delete_by_id(self, model: Type[Any], id: Any) -> bool:
        return await self.batch_delete(model, model.id == id) > 0

    async def delete_many(self, model: Type[Any], ids: Iterable[Any]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        return await self.batch_delete(model, model.id.in_(ids))

    async def batch_delete(self, model: Type[Any], *criteria: Any) -> int:
        """Delete every row matching criteria and return how many went."""
        stmt = delete(model)
        if criteria:
            stmt = stmt.where(*criteria)
        async with self.transaction("delete") as session:
            result = await session.execute(stmt)
        removed = result.rowcount or 0
        store_logger.debug("Batch delete", table=model.__tablename__, removed=removed)
        return removed
