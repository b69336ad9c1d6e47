"""Embedding service module."""

from land_search.embeddings.models import EmbeddingResult
from land_search.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
]
