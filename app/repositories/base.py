from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from app.core.exceptions import DataUnavailableError


class BaseRepository:
    """Thin base class that holds the database session.

    Every concrete repository receives an ``AsyncSession`` at
    construction time so that multiple repositories can share the same
    unit-of-work within a single request.  All queries filter on
    ``org_id``; the tenant is always passed in explicitly.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self._db.flush()

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._db.commit()

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        await self._db.rollback()

    def savepoint(self) -> AsyncSessionTransaction:
        """Return a SAVEPOINT usable as ``async with repo.savepoint():``.

        Work inside the block is rolled back on its own if it raises,
        leaving the outer transaction intact.
        """
        return self._db.begin_nested()

    @asynccontextmanager
    async def source_savepoint(self, dimension: str) -> AsyncIterator[None]:
        """SAVEPOINT for reading one metric source.

        A database error inside the block rolls back to the savepoint and
        is re-raised as ``DataUnavailableError`` tagged with *dimension*.
        """
        try:
            async with self._db.begin_nested():
                yield
        except SQLAlchemyError as exc:
            raise DataUnavailableError(
                f"{dimension} metrics unavailable: {exc.__class__.__name__}",
                dimension,
            ) from exc
