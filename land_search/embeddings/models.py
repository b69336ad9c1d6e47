"""Vectors produced for plot descriptions and search queries."""

from typing import Self

from pydantic import BaseModel, Field, model_validator


class EmbeddingResult(BaseModel):
    """An embedded plot description or search query.

    The vector is stored against a plot record or compared with the plot
    collection, so its width must equal the collection's vector width.

    Attributes:
        text: Plot description or query text that was embedded.
        embedding: Vector stored in, or searched against, the plot collection.
        model: Embedding model name; plots and queries must share it.
        dimensions: Vector width reported by the embedding backend.
    """

    text: str = Field(description="Plot description or query text")
    embedding: list[float] = Field(description="Vector for the plot collection")
    model: str = Field(description="Embedding model name")
    dimensions: int = Field(gt=0, description="Vector width of the plot collection")

    @model_validator(mode="after")
    def _width_matches(self) -> Self:
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )
        return self
