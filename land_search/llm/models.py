"""LLM data models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from land_search.plots.filters import SearchFilter


class Role(str, Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A message in a conversation.

    Attributes:
        role: The role of the message sender.
        content: The message content.
    """

    role: Role = Field(description="Message role")
    content: str = Field(description="Message content")


class GenerationResult(BaseModel):
    """Result from LLM generation.

    Attributes:
        content: The generated text.
        model: Model used for generation.
        total_tokens: Total tokens used.
    """

    content: str = Field(description="Generated text")
    model: str = Field(description="Model used")
    total_tokens: int = Field(default=0, description="Total token count")


class InterpretedQuery(BaseModel):
    """A natural-language plot request split into search inputs.

    Attributes:
        search_text: Descriptive text for similarity matching.
        filters: Structured metadata filter.
    """

    search_text: str = Field(description="Text to embed for similarity search")
    filters: SearchFilter = Field(
        default_factory=SearchFilter,
        description="Structured metadata filter",
    )

    @field_validator("filters", mode="before")
    @classmethod
    def _null_filters(cls, value: Any) -> Any:
        # Models often answer "filters": null when nothing was asked for
        return {} if value is None else value
