"""Embedding model module."""

from embedstore.embeddings.builder import EmbeddingsBuilder
from embedstore.embeddings.models import Embedding
from embedstore.embeddings.service import EmbeddingModel, HTTPEmbeddingModel

__all__ = [
    "Embedding",
    "EmbeddingModel",
    "EmbeddingsBuilder",
    "HTTPEmbeddingModel",
]
