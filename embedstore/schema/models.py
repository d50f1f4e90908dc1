"""Table schema and record models."""

import re
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from embedstore.exceptions import ErrorCode, SchemaError
from embedstore.schema.values import ColumnValue, to_column_value

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ID_COLUMN = "id"

# Names the store uses on the embedding side of the join, plus SQLite's rowid aliases.
RESERVED_COLUMNS = frozenset(
    {"rowid", "oid", "_rowid_", "distance", "k", "embedding", "document_rowid"}
)


def is_identifier(name: str) -> bool:
    """Check whether a name is a plain SQL identifier."""
    return bool(IDENTIFIER_PATTERN.match(name))


class Column(BaseModel):
    """A column of a document table.

    Attributes:
        name: Column name.
        storage_type: Engine type declaration, passed through verbatim
            (e.g. "TEXT PRIMARY KEY", "REAL").
        indexed: Whether a secondary index is created for the column.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Column name")
    storage_type: str = Field(description="Engine type declaration")
    indexed: bool = Field(default=False, description="Create a secondary index")

    def as_indexed(self) -> "Column":
        """Return a copy of this column flagged for indexing."""
        return self.model_copy(update={"indexed": True})


class TableSchema(BaseModel):
    """Document table declaration passed to the store at provision time.

    Attributes:
        name: Document table name. The embedding table is derived from it.
        columns: Ordered column declarations.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Document table name")
    columns: tuple[Column, ...] = Field(description="Ordered columns")

    @property
    def column_names(self) -> list[str]:
        """Column names in declaration order."""
        return [column.name for column in self.columns]

    @property
    def indexed_columns(self) -> list[Column]:
        """Columns flagged for a secondary index."""
        return [column for column in self.columns if column.indexed]

    @property
    def embeddings_table(self) -> str:
        """Name of the companion vector table."""
        return f"{self.name}_embeddings"

    def validate_schema(self) -> None:
        """Check the schema can be provisioned safely.

        Raises:
            SchemaError: If a name is not an identifier, a column is
                duplicated or reserved, or the id column is missing.
        """
        if not is_identifier(self.name):
            raise SchemaError(
                f"Invalid table name: {self.name!r}",
                code=ErrorCode.INVALID_IDENTIFIER,
                details={"table": self.name},
            )

        if not self.columns:
            raise SchemaError(
                f"Table {self.name} declares no columns",
                details={"table": self.name},
            )

        seen: set[str] = set()
        for column in self.columns:
            if not is_identifier(column.name):
                raise SchemaError(
                    f"Invalid column name: {column.name!r}",
                    code=ErrorCode.INVALID_IDENTIFIER,
                    details={"table": self.name, "column": column.name},
                )
            lowered = column.name.lower()
            if lowered in RESERVED_COLUMNS:
                raise SchemaError(
                    f"Column name collides with a reserved identifier: {column.name}",
                    code=ErrorCode.RESERVED_COLUMN,
                    details={"table": self.name, "column": column.name},
                )
            if lowered in seen:
                raise SchemaError(
                    f"Duplicate column: {column.name}",
                    details={"table": self.name, "column": column.name},
                )
            seen.add(lowered)

        if ID_COLUMN not in seen:
            raise SchemaError(
                f"Table {self.name} has no {ID_COLUMN!r} column",
                details={"table": self.name},
            )


@runtime_checkable
class Record(Protocol):
    """Anything the store can persist as one document row."""

    @property
    def record_id(self) -> str:
        """Logical identifier, stable and unique within its table."""
        ...

    def column_values(self) -> list[tuple[str, ColumnValue]]:
        """Column name and value pairs to write, in binding order."""
        ...


class DocumentRecord(BaseModel):
    """Pydantic base for records whose fields map one-to-one onto columns.

    Subclasses add fields; every field becomes a column, in declaration
    order, starting with ``id``.
    """

    id: str = Field(description="Record identifier")

    @property
    def record_id(self) -> str:
        return self.id

    def column_values(self) -> list[tuple[str, ColumnValue]]:
        return [
            (name, to_column_value(value))
            for name, value in self.model_dump().items()
        ]
