"""Embedding-indexed relational store on SQLite and sqlite-vec."""

from embedstore.embeddings import Embedding, EmbeddingModel, EmbeddingsBuilder
from embedstore.filters import SearchFilter
from embedstore.index import SearchRequest, VectorIndex
from embedstore.schema import Column, DocumentRecord, Record, TableSchema
from embedstore.session import Session, SQLiteVecSession
from embedstore.store import VectorStore

__all__ = [
    "Column",
    "DocumentRecord",
    "Embedding",
    "EmbeddingModel",
    "EmbeddingsBuilder",
    "Record",
    "SQLiteVecSession",
    "SearchFilter",
    "SearchRequest",
    "Session",
    "TableSchema",
    "VectorIndex",
    "VectorStore",
]

__version__ = "0.1.0"
