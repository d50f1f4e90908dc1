"""Embedding model interface and HTTP implementation."""

import time
from abc import ABC, abstractmethod

import httpx

from embedstore.config import EmbeddingSettings, get_settings
from embedstore.embeddings.models import Embedding
from embedstore.exceptions import EmbeddingError, ErrorCode
from embedstore.logging_config import get_logger
from embedstore.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingModel(ABC):
    """Abstract base class for embedding models.

    ``ndims`` is fixed per instance: it sizes the embedding table when a
    store is provisioned and must not change afterwards.
    """

    @abstractmethod
    async def embed_text(self, text: str) -> Embedding:
        """Generate the embedding for a single text.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[Embedding]:
        """Generate embeddings for multiple texts.

        Args:
            texts: Texts to embed.

        Returns:
            One embedding per text, in input order.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @property
    @abstractmethod
    def ndims(self) -> int:
        """Get the embedding dimensions."""
        ...


class HTTPEmbeddingModel(EmbeddingModel):
    """Embedding model served over HTTP.

    Compatible with OpenAI-style embedding APIs and
    text-embeddings-inference (TEI) servers.
    """

    # Known model dimensions
    MODEL_DIMENSIONS = {
        "BAAI/bge-large-en-v1.5": 1024,
        "BAAI/bge-base-en-v1.5": 768,
        "BAAI/bge-small-en-v1.5": 384,
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    DEFAULT_DIMENSIONS = 1024

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding model.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {}
            if self._settings.api_key is not None:
                token = self._settings.api_key.get_secret_value()
                headers["Authorization"] = f"Bearer {token}"
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout,
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    @property
    def ndims(self) -> int:
        """Get embedding dimensions."""
        if self._settings.dimensions is not None:
            return self._settings.dimensions
        return self.MODEL_DIMENSIONS.get(self._settings.model, self.DEFAULT_DIMENSIONS)

    async def embed_text(self, text: str) -> Embedding:
        results = await self.embed_texts([text])
        return results[0]

    async def embed_texts(self, texts: list[str]) -> list[Embedding]:
        if not texts:
            return []

        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"

        all_results: list[Embedding] = []
        batch_size = self._settings.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            start_time = time.perf_counter()
            try:
                batch_results = await self._embed_batch_request(client, url, batch)
            except EmbeddingError:
                track_embedding_request(
                    self.model_name,
                    time.perf_counter() - start_time,
                    len(batch),
                    success=False,
                )
                raise
            track_embedding_request(
                self.model_name,
                time.perf_counter() - start_time,
                len(batch),
            )
            all_results.extend(batch_results)

        return all_results

    async def _embed_batch_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
    ) -> list[Embedding]:
        """Make embedding request for a batch.

        Args:
            client: HTTP client.
            url: Embedding endpoint URL.
            texts: Batch of texts.

        Returns:
            One Embedding per text, in input order.

        Raises:
            EmbeddingError: If the request fails or the response does not
                match the batch.
        """
        payload = {
            "input": texts,
            "model": self._settings.model,
        }

        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"url": url, "status": e.response.status_code},
            )
            raise EmbeddingError(
                f"Embedding service returned {e.response.status_code}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(
                f"Embedding request error: {e}",
                extra={"url": url},
            )
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"url": url},
            ) from e

        try:
            data = response.json()
            rows = sorted(
                data["data"],
                key=lambda row: row.get("index", 0),
            )
            vectors = [[float(x) for x in row["embedding"]] for row in rows]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding service returned {len(vectors)} vectors "
                f"for {len(texts)} texts",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"expected": len(texts), "received": len(vectors)},
            )

        expected = self.ndims
        for vector in vectors:
            if len(vector) != expected:
                raise EmbeddingError(
                    f"Embedding has {len(vector)} dimensions, expected {expected}",
                    code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                    details={"expected": expected, "received": len(vector)},
                )

        return [
            Embedding(document=text, vector=vector)
            for text, vector in zip(texts, vectors, strict=True)
        ]
