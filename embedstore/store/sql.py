"""SQL statement builders for the document and vec0 embedding tables.

Only identifiers that already passed schema validation are interpolated;
every value travels as a ``?`` parameter.
"""

from collections.abc import Sequence

import sqlite_vec

from embedstore.schema.models import ID_COLUMN, TableSchema

KNN_ALIAS = "knn"
DOCUMENT_ALIAS = "d"
DISTANCE_KEY = f"{KNN_ALIAS}.distance"


def serialize_vector(vector: Sequence[float]) -> bytes:
    """Encode a vector as the little-endian float32 blob vec0 expects."""
    return sqlite_vec.serialize_float32(list(vector))


def create_table_sql(schema: TableSchema) -> str:
    columns = ",\n    ".join(
        f"{column.name} {column.storage_type}" for column in schema.columns
    )
    return f"CREATE TABLE IF NOT EXISTS {schema.name} (\n    {columns}\n)"


def create_index_sql(schema: TableSchema) -> list[str]:
    """Unique index on the id column plus one index per indexed column.

    The unique index is what makes INSERT OR REPLACE conflict on id,
    whatever storage type the id column declares.
    """
    statements = [
        f"CREATE UNIQUE INDEX IF NOT EXISTS idx_{schema.name}_{ID_COLUMN} "
        f"ON {schema.name}({ID_COLUMN})"
    ]
    for column in schema.indexed_columns:
        if column.name == ID_COLUMN:
            continue
        statements.append(
            f"CREATE INDEX IF NOT EXISTS idx_{schema.name}_{column.name} "
            f"ON {schema.name}({column.name})"
        )
    return statements


def create_embeddings_table_sql(schema: TableSchema, dimensions: int) -> str:
    # document_rowid is a vec0 metadata column pointing at the document row.
    return (
        f"CREATE VIRTUAL TABLE IF NOT EXISTS {schema.embeddings_table} "
        f"USING vec0(embedding float[{dimensions}], document_rowid integer)"
    )


def upsert_sql(schema: TableSchema, columns: Sequence[str]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return (
        f"INSERT OR REPLACE INTO {schema.name} ({', '.join(columns)}) "
        f"VALUES ({placeholders})"
    )


def select_rowid_sql(schema: TableSchema) -> str:
    return f"SELECT rowid FROM {schema.name} WHERE {ID_COLUMN} = ?"


def insert_embedding_sql(schema: TableSchema) -> str:
    return (
        f"INSERT INTO {schema.embeddings_table} (embedding, document_rowid) "
        "VALUES (?, ?)"
    )


def delete_embeddings_sql(schema: TableSchema) -> str:
    return f"DELETE FROM {schema.embeddings_table} WHERE document_rowid = ?"


def delete_document_sql(schema: TableSchema) -> str:
    return f"DELETE FROM {schema.name} WHERE rowid = ?"


def delete_orphan_embeddings_sql(schema: TableSchema) -> str:
    """Embedding rows whose document row no longer exists."""
    return (
        f"DELETE FROM {schema.embeddings_table} "
        f"WHERE document_rowid NOT IN (SELECT rowid FROM {schema.name})"
    )


def count_sql(table: str) -> str:
    return f"SELECT COUNT(*) FROM {table}"


def knn_query_sql(
    schema: TableSchema,
    projection: Sequence[str],
    condition: str,
) -> str:
    """Nearest-neighbour query joined back to the document table.

    The KNN step is materialized before the join so the neighbour count
    applies to the whole table; ``condition`` then filters those
    neighbours. Parameters: query vector blob, neighbour count, then the
    condition's own parameters.

    Args:
        schema: Document table schema.
        projection: Document columns to select, before the distance.
        condition: WHERE condition over document columns and ``knn.distance``.
    """
    select_cols = ", ".join(f"{DOCUMENT_ALIAS}.{name}" for name in projection)
    return (
        f"WITH {KNN_ALIAS} AS MATERIALIZED (\n"
        f"    SELECT document_rowid, distance\n"
        f"    FROM {schema.embeddings_table}\n"
        f"    WHERE embedding MATCH ? AND k = ?\n"
        f")\n"
        f"SELECT {select_cols}, {KNN_ALIAS}.distance\n"
        f"FROM {KNN_ALIAS}\n"
        f"JOIN {schema.name} {DOCUMENT_ALIAS} "
        f"ON {KNN_ALIAS}.document_rowid = {DOCUMENT_ALIAS}.rowid\n"
        f"WHERE {condition}\n"
        f"ORDER BY {KNN_ALIAS}.distance"
    )
