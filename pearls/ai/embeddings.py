"""
Text embeddings via the OpenAI API, and cosine ranking over stored vectors.
"""

from functools import lru_cache
from typing import List, Optional, Sequence, Tuple, TypeVar

import numpy as np
from openai import AsyncOpenAI, OpenAIError

from pearls.config import Settings, get_settings
from pearls.kernel.errors import UpstreamError
from pearls.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# The model accepts roughly 8k tokens; characters are a cheap upper bound.
MAX_INPUT_CHARS = 30000


class EmbeddingService:
    """Wraps AsyncOpenAI embeddings. Unavailable when no API key is set."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.dimensions = dimensions
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingService":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
        )

    @property
    def available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def embed(self, text: str) -> List[float]:
        vectors = await self.embed_many([text])
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed a batch of texts, preserving input order.

        Raises:
            UpstreamError: if the service is unconfigured or the API call fails
        """
        if not self.available:
            raise UpstreamError("OPENAI_API_KEY not configured - vector search unavailable")

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=[text[:MAX_INPUT_CHARS] for text in texts],
                dimensions=self.dimensions,
            )
        except OpenAIError as exc:
            logger.error("Embedding request failed: %s", exc)
            raise UpstreamError("Embedding service request failed") from exc

        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        return 0.0
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def rank_by_similarity(
    query: Sequence[float],
    candidates: Sequence[Tuple[T, Sequence[float]]],
    limit: int,
) -> List[Tuple[T, float]]:
    """Top `limit` candidates by cosine similarity to `query`, best first."""
    scored = [(item, cosine_similarity(query, vector)) for item, vector in candidates]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]


@lru_cache
def get_embedding_service() -> EmbeddingService:
    return EmbeddingService.from_settings(get_settings())
