"""Storage engine session interface."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from contextlib import aclosing, asynccontextmanager
from typing import Any

from pydantic import BaseModel, Field

Row = Sequence[Any]


class ExecuteResult(BaseModel):
    """Outcome of a write statement.

    Attributes:
        rows_affected: Rows changed by the statement (-1 when unknown).
        last_insert_rowid: Physical row id of the last inserted row.
    """

    rows_affected: int = Field(default=-1, description="Rows changed")
    last_insert_rowid: int | None = Field(
        default=None,
        description="Engine-assigned row id of the last insert",
    )


class Session(ABC):
    """A connection to the storage engine.

    Statements use positional ``?`` placeholders. Engine errors propagate
    unchanged; callers decide how to wrap them.
    """

    @abstractmethod
    async def execute(
        self,
        statement: str,
        params: Sequence[Any] = (),
    ) -> ExecuteResult:
        """Run a statement that returns no rows.

        Args:
            statement: SQL text.
            params: Values for the placeholders, in order.

        Returns:
            Affected-row information.
        """
        ...

    @abstractmethod
    def query(
        self,
        statement: str,
        params: Sequence[Any] = (),
    ) -> AsyncGenerator[Row, None]:
        """Run a statement and yield its rows lazily.

        Args:
            statement: SQL text.
            params: Values for the placeholders, in order.

        Yields:
            Rows supporting positional access.
        """
        ...

    @abstractmethod
    async def begin(self) -> None:
        """Open a transaction."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        """Commit the open transaction."""
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """Roll back the open transaction."""
        ...

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Session"]:
        """Scope a transaction: commit on success, roll back on any exception.

        Cancellation counts as an exception, so a dropped task never leaves
        a transaction open on the session.
        """
        await self.begin()
        try:
            yield self
            await self.commit()
        except BaseException:
            await self.rollback()
            raise

    async def fetch_one(
        self,
        statement: str,
        params: Sequence[Any] = (),
    ) -> Row | None:
        """Return the first row of a query, or None."""
        async with aclosing(self.query(statement, params)) as rows:
            async for row in rows:
                return row
        return None
