"""SQLite session backed by aiosqlite and the sqlite-vec extension."""

from collections.abc import AsyncGenerator, Sequence
from typing import Any

import aiosqlite
import sqlite_vec

from embedstore.config import DatabaseSettings, get_settings
from embedstore.logging_config import get_logger
from embedstore.session.base import ExecuteResult, Row, Session

logger = get_logger(__name__)


async def load_vector_extension(connection: aiosqlite.Connection) -> None:
    """Load sqlite-vec into an open connection."""
    await connection.enable_load_extension(True)
    try:
        await connection.load_extension(sqlite_vec.loadable_path())
    finally:
        await connection.enable_load_extension(False)


class SQLiteVecSession(Session):
    """Session over a single aiosqlite connection.

    The connection runs in autocommit mode (``isolation_level=None``) so
    transactions are demarcated only by explicit BEGIN/COMMIT/ROLLBACK.
    """

    def __init__(
        self,
        connection: aiosqlite.Connection,
        owns_connection: bool = False,
    ) -> None:
        """Wrap an open connection.

        Args:
            connection: Connection with sqlite-vec loaded and
                ``isolation_level=None``.
            owns_connection: Close the connection in ``close()``.
        """
        self._connection = connection
        self._owns_connection = owns_connection

    @classmethod
    async def connect(
        cls,
        settings: DatabaseSettings | None = None,
    ) -> "SQLiteVecSession":
        """Open a connection from settings and load sqlite-vec.

        Args:
            settings: Database configuration. Uses defaults if not provided.

        Returns:
            A session that owns its connection.
        """
        settings = settings or get_settings().database
        connection = await aiosqlite.connect(settings.path, isolation_level=None)
        try:
            if settings.load_vector_extension:
                await load_vector_extension(connection)
        except BaseException:
            await connection.close()
            raise

        logger.debug(f"Opened SQLite session: {settings.path}")
        return cls(connection, owns_connection=True)

    async def close(self) -> None:
        """Close the connection if this session opened it."""
        if self._owns_connection:
            await self._connection.close()

    async def __aenter__(self) -> "SQLiteVecSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def execute(
        self,
        statement: str,
        params: Sequence[Any] = (),
    ) -> ExecuteResult:
        cursor = await self._connection.execute(statement, tuple(params))
        try:
            return ExecuteResult(
                rows_affected=cursor.rowcount,
                last_insert_rowid=cursor.lastrowid,
            )
        finally:
            await cursor.close()

    async def query(
        self,
        statement: str,
        params: Sequence[Any] = (),
    ) -> AsyncGenerator[Row, None]:
        async with self._connection.execute(statement, tuple(params)) as cursor:
            async for row in cursor:
                yield row

    async def begin(self) -> None:
        await self.execute("BEGIN")

    async def commit(self) -> None:
        await self.execute("COMMIT")

    async def rollback(self) -> None:
        await self.execute("ROLLBACK")
