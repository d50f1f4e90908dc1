"""Similarity search request models."""

from pydantic import BaseModel, ConfigDict, Field

from embedstore.filters.models import SearchFilter


class SearchRequest(BaseModel):
    """A similarity query.

    Attributes:
        query: Text to embed and search for.
        sample_count: Number of nearest neighbours to consider (at least 1).
        threshold: Only neighbours with distance above this are kept
            (0.0 when unset).
        filter: Optional predicate over document columns.
    """

    model_config = ConfigDict(frozen=True)

    query: str = Field(description="Query text")
    sample_count: int = Field(description="Nearest neighbours to consider")
    threshold: float | None = Field(
        default=None,
        description="Distance threshold",
    )
    filter: SearchFilter | None = Field(
        default=None,
        description="Predicate over document columns",
    )
