"""Column values bound into store statements.

Every value a record writes goes through a ColumnValue, which decides the
parameter bound for it and the storage type it is declared as. Values are
always bound as statement parameters, never spliced into statement text.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

SQLParam = str | int | float | bytes | None


class ColumnValue(ABC):
    """A typed field value that can be bound as a statement parameter."""

    storage_type: str = "BLOB"

    @abstractmethod
    def to_param(self) -> SQLParam:
        """Return the value to bind for this column."""
        ...

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnValue):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.to_param() == other.to_param()
        )

    def __hash__(self) -> int:
        return hash((type(self), self.to_param()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_param()!r})"


class NullValue(ColumnValue):
    """SQL NULL."""

    storage_type = "NULL"

    def to_param(self) -> SQLParam:
        return None


class BooleanValue(ColumnValue):
    """Boolean stored as 0/1."""

    storage_type = "INTEGER"

    def __init__(self, value: bool) -> None:
        self.value = value

    def to_param(self) -> SQLParam:
        return 1 if self.value else 0


class IntegerValue(ColumnValue):
    storage_type = "INTEGER"

    def __init__(self, value: int) -> None:
        self.value = value

    def to_param(self) -> SQLParam:
        return self.value


class RealValue(ColumnValue):
    storage_type = "REAL"

    def __init__(self, value: float) -> None:
        self.value = value

    def to_param(self) -> SQLParam:
        return self.value


class TextValue(ColumnValue):
    storage_type = "TEXT"

    def __init__(self, value: str) -> None:
        self.value = value

    def to_param(self) -> SQLParam:
        return self.value


class BlobValue(ColumnValue):
    storage_type = "BLOB"

    def __init__(self, value: bytes) -> None:
        self.value = bytes(value)

    def to_param(self) -> SQLParam:
        return self.value


class JsonValue(ColumnValue):
    """Structured value (list or dict) stored as JSON text.

    ``to_param`` raises TypeError when an element has no JSON form.
    """

    storage_type = "TEXT"

    def __init__(self, value: list[Any] | dict[str, Any]) -> None:
        self.value = value

    def to_param(self) -> SQLParam:
        return json.dumps(self.value, ensure_ascii=False)


def to_column_value(value: Any) -> ColumnValue:
    """Wrap a plain Python value in the matching ColumnValue.

    Args:
        value: A ColumnValue, None, bool, int, float, str, bytes, list or dict.

    Returns:
        The wrapped value.

    Raises:
        TypeError: If the value kind has no column representation.
    """
    if isinstance(value, ColumnValue):
        return value
    if value is None:
        return NullValue()
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BooleanValue(value)
    if isinstance(value, int):
        return IntegerValue(value)
    if isinstance(value, float):
        return RealValue(value)
    if isinstance(value, str):
        return TextValue(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BlobValue(bytes(value))
    if isinstance(value, (list, dict)):
        return JsonValue(value)
    raise TypeError(f"Unsupported column value type: {type(value).__name__}")
