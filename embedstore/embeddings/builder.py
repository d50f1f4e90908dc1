"""Build ingestion batches by embedding record texts."""

from typing import Generic, TypeVar

from embedstore.embeddings.models import Embedding
from embedstore.embeddings.service import EmbeddingModel
from embedstore.exceptions import EmbeddingError
from embedstore.logging_config import get_logger

logger = get_logger(__name__)

R = TypeVar("R")


class EmbeddingsBuilder(Generic[R]):
    """Collect records with the texts to embed for each, then embed them.

    All texts go to the model in one ``embed_texts`` call; the results are
    regrouped per record in the order the records were added, which is the
    batch shape ``VectorStore.ingest`` takes.

    Example:
        batch = await (
            EmbeddingsBuilder(model)
            .document(doc, doc.content)
            .document(other, *other.chunks)
            .build()
        )
        await store.ingest(batch)
    """

    def __init__(self, model: EmbeddingModel) -> None:
        self._model = model
        self._documents: list[tuple[R, list[str]]] = []

    def document(self, record: R, *texts: str) -> "EmbeddingsBuilder[R]":
        """Queue a record and the texts (one or more chunks) to embed for it."""
        self._documents.append((record, list(texts)))
        return self

    def documents(self, items: list[tuple[R, str]]) -> "EmbeddingsBuilder[R]":
        """Queue several records, one text each."""
        for record, text in items:
            self.document(record, text)
        return self

    async def build(self) -> list[tuple[R, list[Embedding]]]:
        """Embed every queued text.

        Returns:
            (record, embeddings) pairs in insertion order.

        Raises:
            EmbeddingError: If a record has no texts or the model fails.
        """
        for index, (_, texts) in enumerate(self._documents):
            if not texts:
                raise EmbeddingError(
                    f"Document {index} has no text to embed",
                    details={"position": index},
                )

        flat = [text for _, texts in self._documents for text in texts]
        if not flat:
            return []

        embeddings = await self._model.embed_texts(flat)
        if len(embeddings) != len(flat):
            raise EmbeddingError(
                f"Model returned {len(embeddings)} embeddings for {len(flat)} texts",
                details={"expected": len(flat), "received": len(embeddings)},
            )

        logger.debug(
            f"Embedded {len(flat)} texts for {len(self._documents)} documents"
        )

        batch: list[tuple[R, list[Embedding]]] = []
        offset = 0
        for record, texts in self._documents:
            batch.append((record, embeddings[offset : offset + len(texts)]))
            offset += len(texts)
        return batch
