"""Similarity index module."""

from embedstore.index.models import SearchRequest
from embedstore.index.service import VectorIndex, build_where_clause

__all__ = [
    "SearchRequest",
    "VectorIndex",
    "build_where_clause",
]
