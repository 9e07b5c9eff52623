"""Unit tests for embeddings, similarity ranking and background enrichment."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError
from sqlalchemy import select

from pearls.ai.embeddings import (
    MAX_INPUT_CHARS,
    EmbeddingService,
    cosine_similarity,
    rank_by_similarity,
)
from pearls.ai.enrichment import EmbeddingEnricher
from pearls.kernel.errors import UpstreamError
from pearls.kernel.models import Pearl


def mock_client(*vectors, error=None):
    """AsyncOpenAI stand-in; returns items out of order to check re-sorting."""
    client = MagicMock()
    if error is not None:
        client.embeddings.create = AsyncMock(side_effect=error)
    else:
        data = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
        client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=list(reversed(data))))
    return client


class TestSimilarity:
    """Tests for cosine similarity and ranking."""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_degenerate_inputs(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0

    def test_rank_by_similarity(self):
        ranked = rank_by_similarity(
            [1.0, 0.0],
            [("far", [0.0, 1.0]), ("near", [1.0, 0.0]), ("mid", [1.0, 1.0])],
            limit=2,
        )
        assert [item for item, _ in ranked] == ["near", "mid"]


class TestEmbeddingService:
    """Tests for EmbeddingService."""

    def test_unavailable_without_key(self):
        assert not EmbeddingService(api_key="  ").available
        assert EmbeddingService(api_key="sk-test").available

    @pytest.mark.asyncio
    async def test_unavailable_raises(self):
        with pytest.raises(UpstreamError):
            await EmbeddingService(api_key="").embed("text")

    @pytest.mark.asyncio
    async def test_embed_many_preserves_order(self):
        client = mock_client([1.0], [2.0], [3.0])
        service = EmbeddingService(api_key="sk-test", model="m", dimensions=1, client=client)

        vectors = await service.embed_many(["a", "b", "c"])

        assert vectors == [[1.0], [2.0], [3.0]]
        kwargs = client.embeddings.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["dimensions"] == 1

    @pytest.mark.asyncio
    async def test_long_input_truncated(self):
        client = mock_client([1.0])
        service = EmbeddingService(api_key="sk-test", client=client)

        await service.embed("x" * (MAX_INPUT_CHARS + 100))

        sent = client.embeddings.create.call_args.kwargs["input"]
        assert len(sent[0]) == MAX_INPUT_CHARS

    @pytest.mark.asyncio
    async def test_api_failure_is_upstream_error(self):
        service = EmbeddingService(api_key="sk-test", client=mock_client(error=OpenAIError("boom")))
        with pytest.raises(UpstreamError):
            await service.embed("text")


class TestEmbeddingEnricher:
    """Tests for EmbeddingEnricher."""

    @pytest.mark.asyncio
    async def test_disabled_schedule_is_noop(self, session_maker):
        enricher = EmbeddingEnricher(EmbeddingService(api_key=""), session_factory=session_maker)
        assert not enricher.enabled
        assert enricher.schedule(None, "text") is None
        assert len(enricher) == 0

    @pytest.mark.asyncio
    async def test_schedule_stores_embedding(self, db_session, session_maker, threads, make_pearl):
        pearl = await make_pearl(threads["public-reflections"], "content")
        await db_session.commit()
        service = EmbeddingService(api_key="sk-test", client=mock_client([0.5, 0.5]))
        enricher = EmbeddingEnricher(service, session_factory=session_maker)

        task = enricher.schedule(pearl.id, "content")
        assert task is not None
        await enricher.drain()

        assert task.result() is True
        assert len(enricher) == 0
        stored = await db_session.execute(select(Pearl.embedding).where(Pearl.id == pearl.id))
        assert stored.scalar_one() == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_failure_is_swallowed_and_pearl_untouched(
        self, db_session, session_maker, threads, make_pearl
    ):
        pearl = await make_pearl(threads["public-reflections"], "content")
        await db_session.commit()
        service = EmbeddingService(api_key="sk-test", client=mock_client(error=OpenAIError("down")))
        enricher = EmbeddingEnricher(service, session_factory=session_maker)

        assert await enricher.enrich(pearl.id, "content") is False

        stored = await db_session.execute(select(Pearl.embedding).where(Pearl.id == pearl.id))
        assert stored.scalar_one() is None

    @pytest.mark.asyncio
    async def test_backfill(self, db_session, session_maker, threads, make_pearl):
        for i in range(3):
            await make_pearl(threads["public-reflections"], f"pearl {i}")
        await db_session.commit()

        client = MagicMock()

        async def create(model, input, dimensions):
            return SimpleNamespace(
                data=[SimpleNamespace(index=i, embedding=[float(i)]) for i in range(len(input))]
            )

        client.embeddings.create = create
        enricher = EmbeddingEnricher(EmbeddingService(api_key="sk-test", client=client), session_maker)

        stored = await enricher.backfill(batch_size=2)

        assert stored == 3
        remaining = await db_session.execute(select(Pearl.id).where(Pearl.embedding.is_(None)))
        assert remaining.first() is None
