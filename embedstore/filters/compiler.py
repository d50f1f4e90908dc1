"""Compile search filters into parameterized WHERE conditions."""

import json
import re
from typing import Any

from pydantic import BaseModel, Field

from embedstore.exceptions import ErrorCode, FilterError
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
from embedstore.schema.values import SQLParam

# Column name, optionally qualified by a table alias (``d.year``).
KEY_PATTERN = re.compile(r"^(?:[A-Za-z_][A-Za-z0-9_]*\.)?[A-Za-z_][A-Za-z0-9_]*$")

_COMPARISONS: dict[type[SearchFilter], str] = {Eq: "=", Gt: ">", Lt: "<"}


class CompiledFilter(BaseModel):
    """A WHERE condition and the parameters for its placeholders, in order."""

    condition: str = Field(description="Condition text with ? placeholders")
    params: list[Any] = Field(
        default_factory=list,
        description="Bound values, one per placeholder",
    )


def encode_value(value: Any) -> SQLParam:
    """Convert a filter literal into a bindable parameter.

    Raises:
        FilterError: If the value kind cannot be represented.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, (list, dict)):
        try:
            return json.dumps(value).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise FilterError(
                f"Failed to serialize filter value: {e}",
                code=ErrorCode.FILTER_SERIALIZATION,
                details={"error": str(e)},
            ) from e
    raise FilterError(
        f"Unsupported filter value type: {type(value).__name__}",
        code=ErrorCode.FILTER_UNSUPPORTED_VALUE,
        details={"type": type(value).__name__},
    )


def _check_key(key: str) -> str:
    if not KEY_PATTERN.match(key):
        raise FilterError(
            f"Invalid filter key: {key!r}",
            code=ErrorCode.FILTER_INVALID_KEY,
            details={"key": key},
        )
    return key


def compile_filter(search_filter: SearchFilter) -> CompiledFilter:
    """Compile a filter tree bottom-up.

    Args:
        search_filter: Root of the filter tree.

    Returns:
        Condition text and parameters. Combinators parenthesize each side
        and concatenate parameters left to right, so parameter order always
        matches placeholder order.

    Raises:
        FilterError: On an invalid key, an unsupported value or an unknown node.
    """
    if isinstance(search_filter, (Eq, Gt, Lt)):
        key = _check_key(search_filter.key)
        op = _COMPARISONS[type(search_filter)]
        return CompiledFilter(
            condition=f"{key} {op} ?",
            params=[encode_value(search_filter.value)],
        )

    if isinstance(search_filter, Between):
        key = _check_key(search_filter.key)
        return CompiledFilter(
            condition=f"{key} BETWEEN ? AND ?",
            params=[encode_value(search_filter.low), encode_value(search_filter.high)],
        )

    if isinstance(search_filter, IsNull):
        return CompiledFilter(condition=f"{_check_key(search_filter.key)} IS NULL")

    if isinstance(search_filter, IsNotNull):
        return CompiledFilter(condition=f"{_check_key(search_filter.key)} IS NOT NULL")

    if isinstance(search_filter, Like):
        return CompiledFilter(
            condition=f"{_check_key(search_filter.key)} LIKE ?",
            params=[encode_value(search_filter.pattern)],
        )

    if isinstance(search_filter, Glob):
        return CompiledFilter(
            condition=f"{_check_key(search_filter.key)} GLOB ?",
            params=[encode_value(search_filter.pattern)],
        )

    if isinstance(search_filter, (And, Or)):
        left = compile_filter(search_filter.left)
        right = compile_filter(search_filter.right)
        op = "AND" if isinstance(search_filter, And) else "OR"
        return CompiledFilter(
            condition=f"({left.condition}) {op} ({right.condition})",
            params=left.params + right.params,
        )

    if isinstance(search_filter, Not):
        inner = compile_filter(search_filter.inner)
        return CompiledFilter(condition=f"NOT ({inner.condition})", params=inner.params)

    raise FilterError(
        f"Unsupported filter node: {type(search_filter).__name__}",
        details={"node": type(search_filter).__name__},
    )
