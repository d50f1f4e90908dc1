"""Embedding data models."""

from pydantic import BaseModel, Field


class Embedding(BaseModel):
    """A vector and the text it was computed from.

    Attributes:
        document: The source text that was embedded.
        vector: The embedding vector.
    """

    document: str = Field(description="Source text")
    vector: list[float] = Field(description="Embedding vector")

    @property
    def dimensions(self) -> int:
        """Number of dimensions in the vector."""
        return len(self.vector)
