"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest

from embedstore.config import DatabaseSettings
from embedstore.embeddings.models import Embedding
from embedstore.embeddings.service import EmbeddingModel
from embedstore.exceptions import EmbeddingError
from embedstore.schema.models import Column, DocumentRecord, TableSchema
from embedstore.session.sqlite import SQLiteVecSession


class Note(DocumentRecord):
    """Record type used across store and index tests."""

    content: str


NOTE_SCHEMA = TableSchema(
    name="notes",
    columns=[
        Column(name="id", storage_type="TEXT PRIMARY KEY"),
        Column(name="content", storage_type="TEXT"),
    ],
)


class FakeEmbeddingModel(EmbeddingModel):
    """Embedding model that looks vectors up in a fixed table."""

    def __init__(self, vectors: dict[str, list[float]], ndims: int = 4) -> None:
        self.vectors = vectors
        self._ndims = ndims
        self.calls: list[list[str]] = []

    @property
    def ndims(self) -> int:
        return self._ndims

    async def embed_text(self, text: str) -> Embedding:
        results = await self.embed_texts([text])
        return results[0]

    async def embed_texts(self, texts: list[str]) -> list[Embedding]:
        self.calls.append(list(texts))
        try:
            return [Embedding(document=t, vector=self.vectors[t]) for t in texts]
        except KeyError as e:
            raise EmbeddingError(f"No vector for text: {e}") from e


@pytest.fixture
async def session() -> AsyncGenerator[SQLiteVecSession, None]:
    """In-memory SQLite session with sqlite-vec loaded.

    Yields:
        Session owning its connection.
    """
    db = await SQLiteVecSession.connect(DatabaseSettings(path=":memory:"))
    try:
        yield db
    finally:
        await db.close()
