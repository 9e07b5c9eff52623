"""
AI module - embeddings for semantic search.
"""

from pearls.ai.embeddings import (
    EmbeddingService,
    cosine_similarity,
    get_embedding_service,
    rank_by_similarity,
)
from pearls.ai.enrichment import EmbeddingEnricher, get_enricher

__all__ = [
    "EmbeddingEnricher",
    "EmbeddingService",
    "cosine_similarity",
    "get_embedding_service",
    "get_enricher",
    "rank_by_similarity",
]
