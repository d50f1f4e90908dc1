"""Search filter module."""

from embedstore.filters.compiler import CompiledFilter, compile_filter, encode_value
from embedstore.filters.models import (
    And,
    Between,
    Eq,
    Glob,
    Gt,
    IsNotNull,
    IsNull,
    Like,
    Lt,
    Not,
    Or,
    SearchFilter,
)

__all__ = [
    "And",
    "Between",
    "CompiledFilter",
    "Eq",
    "Glob",
    "Gt",
    "IsNotNull",
    "IsNull",
    "Like",
    "Lt",
    "Not",
    "Or",
    "SearchFilter",
    "compile_filter",
    "encode_value",
]
