"""Record schema module."""

from embedstore.schema.models import (
    Column,
    DocumentRecord,
    Record,
    TableSchema,
)
from embedstore.schema.values import (
    BlobValue,
    BooleanValue,
    ColumnValue,
    IntegerValue,
    JsonValue,
    NullValue,
    RealValue,
    TextValue,
    to_column_value,
)

__all__ = [
    "BlobValue",
    "BooleanValue",
    "Column",
    "ColumnValue",
    "DocumentRecord",
    "IntegerValue",
    "JsonValue",
    "NullValue",
    "RealValue",
    "Record",
    "TableSchema",
    "TextValue",
    "to_column_value",
]
