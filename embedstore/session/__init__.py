"""Storage engine session module."""

from embedstore.session.base import ExecuteResult, Row, Session
from embedstore.session.sqlite import SQLiteVecSession, load_vector_extension

__all__ = [
    "ExecuteResult",
    "Row",
    "SQLiteVecSession",
    "Session",
    "load_vector_extension",
]
