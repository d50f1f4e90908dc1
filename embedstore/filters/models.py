"""Search filter expression tree.

Filters are immutable pydantic models. Leaves test a single column; And, Or
and Not combine them. The ``&``, ``|`` and ``~`` operators build the
combinators, so ``Eq(key="lang", value="en") & ~IsNull(key="author")``
reads the way it compiles.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchFilter(BaseModel):
    """Base class of every filter node."""

    model_config = ConfigDict(frozen=True)

    def __and__(self, other: "SearchFilter") -> "And":
        return And(left=self, right=other)

    def __or__(self, other: "SearchFilter") -> "Or":
        return Or(left=self, right=other)

    def __invert__(self) -> "Not":
        return Not(inner=self)


class Eq(SearchFilter):
    """``key = value``."""

    key: str
    value: Any = Field(description="Literal compared against the column")


class Gt(SearchFilter):
    """``key > value``."""

    key: str
    value: Any = Field(description="Literal compared against the column")


class Lt(SearchFilter):
    """``key < value``."""

    key: str
    value: Any = Field(description="Literal compared against the column")


class Between(SearchFilter):
    """``key BETWEEN low AND high`` (inclusive)."""

    key: str
    low: Any
    high: Any


class IsNull(SearchFilter):
    key: str


class IsNotNull(SearchFilter):
    key: str


class Like(SearchFilter):
    """SQL ``LIKE`` pattern match (``%`` and ``_`` wildcards)."""

    key: str
    pattern: str


class Glob(SearchFilter):
    """SQLite ``GLOB`` pattern match (case sensitive, ``*`` and ``?``)."""

    key: str
    pattern: str


class And(SearchFilter):
    left: SearchFilter
    right: SearchFilter


class Or(SearchFilter):
    left: SearchFilter
    right: SearchFilter


class Not(SearchFilter):
    inner: SearchFilter
