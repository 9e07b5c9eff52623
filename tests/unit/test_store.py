"""Unit tests for thread and pearl data access."""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from pearls.kernel.errors import ConflictError
from pearls.kernel.models import Permission, PearlStatus, ThreadAccess
from pearls.kernel.store import PearlStore, ThreadStore
from pearls.kernel.store.search import TermMatchSearch, backend_for, make_snippet


class TestThreadStore:
    """Tests for ThreadStore."""

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, db_session, threads):
        with pytest.raises(ConflictError) as exc_info:
            await ThreadStore(db_session).insert_thread("aurora-lineage", "Again")
        assert "already exists" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_duplicate_grant_is_ignored(self, db_session, threads):
        store = ThreadStore(db_session)
        lineage = threads["aurora-lineage"]

        inserted = await store.insert_grant(lineage.id, "aurora:member", Permission.WRITE)

        assert inserted is False
        result = await db_session.execute(
            select(ThreadAccess.role, ThreadAccess.permission)
            .where(ThreadAccess.thread_id == lineage.id)
            .order_by(ThreadAccess.role)
        )
        assert [tuple(row) for row in result.all()] == [
            ("admin", "admin"),
            ("aurora:member", "write"),
        ]

    @pytest.mark.asyncio
    async def test_list_threads_ordered_by_name(self, db_session, threads):
        listed = await ThreadStore(db_session).list_threads()
        assert [t.name for t in listed] == ["Aurora Lineage", "Public Reflections", "Rob Personal"]

    @pytest.mark.asyncio
    async def test_list_threads_filters(self, db_session, threads):
        store = ThreadStore(db_session)
        ids = {threads["public-reflections"].id, threads["aurora-lineage"].id}

        assert [t.slug for t in await store.list_threads(ids, include_public=False)] == [
            "aurora-lineage"
        ]
        assert await store.list_threads(set()) == []

    @pytest.mark.asyncio
    async def test_pearl_counts(self, db_session, threads, make_pearl):
        lineage = threads["aurora-lineage"]
        await make_pearl(lineage, "one")
        await make_pearl(lineage, "two")

        counts = await ThreadStore(db_session).pearl_counts()

        assert counts == {lineage.id: 2}


class TestQueryRecent:
    """Tests for PearlStore.query_recent."""

    @pytest.mark.asyncio
    async def test_newest_first_with_limit(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        for i in range(5):
            await make_pearl(public, f"pearl {i}")

        recent = await PearlStore(db_session).query_recent([public.id], limit=3)

        assert [p.content for p in recent] == ["pearl 4", "pearl 3", "pearl 2"]

    @pytest.mark.asyncio
    async def test_before_is_exclusive(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        pearls = [await make_pearl(public, f"pearl {i}") for i in range(4)]

        older = await PearlStore(db_session).query_recent(
            [public.id], limit=10, before=pearls[2].created_at
        )

        assert [p.content for p in older] == ["pearl 1", "pearl 0"]

    @pytest.mark.asyncio
    async def test_naive_before_is_treated_as_utc(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        await make_pearl(public, "early", created_at=datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc))
        await make_pearl(public, "late", created_at=datetime(2026, 1, 1, 11, 0, tzinfo=timezone.utc))

        found = await PearlStore(db_session).query_recent(
            [public.id], limit=10, before=datetime(2026, 1, 1, 10, 0)
        )

        assert [p.content for p in found] == ["early"]

    @pytest.mark.asyncio
    async def test_scope(self, db_session, threads, make_pearl):
        await make_pearl(threads["public-reflections"], "public")
        await make_pearl(threads["rob-personal"], "private")
        store = PearlStore(db_session)

        assert [p.content for p in await store.query_recent([threads["public-reflections"].id], 10)] == ["public"]
        assert len(await store.query_recent(None, 10)) == 2
        assert await store.query_recent(set(), 10) == []


class TestSearch:
    """Tests for the term-matching search backend."""

    def test_backend_selection(self):
        assert isinstance(backend_for("sqlite"), TermMatchSearch)
        assert not isinstance(backend_for("postgresql"), TermMatchSearch)

    def test_snippet_window(self):
        content = "x" * 300 + " consciousness " + "y" * 300
        snippet = make_snippet(content, ["consciousness"])
        assert "consciousness" in snippet
        assert snippet.startswith("...") and snippet.endswith("...")
        assert len(snippet) < len(content)

    def test_snippet_without_match_is_leading_text(self):
        assert make_snippet("short text", ["absent"]) == "short text"

    @pytest.mark.asyncio
    async def test_all_terms_must_match(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        await make_pearl(public, "The jellyfish model of consciousness")
        await make_pearl(public, "Only jellyfish here")

        hits = await PearlStore(db_session).search("jellyfish consciousness", [public.id], 10)

        assert [hit.pearl.content for hit in hits] == ["The jellyfish model of consciousness"]

    @pytest.mark.asyncio
    async def test_case_insensitive_and_title_matched(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        await make_pearl(public, "body text", title="Oversoul Theory")

        hits = await PearlStore(db_session).search("oversoul", [public.id], 10)

        assert len(hits) == 1

    @pytest.mark.asyncio
    async def test_denser_match_ranks_first(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        await make_pearl(public, "emergence emergence emergence")
        await make_pearl(public, "a much longer pearl that mentions emergence only once among many words")

        hits = await PearlStore(db_session).search("emergence", [public.id], 10)

        assert hits[0].pearl.content == "emergence emergence emergence"
        assert hits[0].rank > hits[1].rank

    @pytest.mark.asyncio
    async def test_scope_and_limit(self, db_session, threads, make_pearl):
        for i in range(3):
            await make_pearl(threads["public-reflections"], f"signal {i}")
        await make_pearl(threads["rob-personal"], "signal hidden")
        store = PearlStore(db_session)

        scoped = await store.search("signal", [threads["public-reflections"].id], 2)
        assert len(scoped) == 2
        assert all(hit.pearl.thread_id == threads["public-reflections"].id for hit in scoped)
        assert await store.search("signal", set(), 10) == []

    @pytest.mark.asyncio
    async def test_query_without_terms(self, db_session, threads, make_pearl):
        await make_pearl(threads["public-reflections"], "anything")
        assert await PearlStore(db_session).search("!!!", None, 10) == []


class TestCorrections:
    """Tests for PearlStore.mark_corrected."""

    @pytest.mark.asyncio
    async def test_mark_corrected_links_correction(self, db_session, threads, make_pearl):
        lineage = threads["aurora-lineage"]
        original = await make_pearl(lineage, "wrong", metadata_={"tags": ["x"]})
        fix = await make_pearl(lineage, "right")

        await PearlStore(db_session).mark_corrected(original, fix, reason="typo")

        assert original.status == PearlStatus.CORRECTED.value
        assert original.metadata_ == {"tags": ["x"], "correction_reason": "typo"}
        assert fix.parent_pearl == original.id
        assert fix.status == PearlStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_mark_corrected_is_idempotent(self, db_session, threads, make_pearl):
        original = await make_pearl(threads["aurora-lineage"], "wrong")
        store = PearlStore(db_session)

        await store.mark_corrected(original)
        await store.mark_corrected(original)

        assert original.status == PearlStatus.CORRECTED.value
        assert original.metadata_ is None


class TestStatsAndMaintenance:
    """Tests for aggregate queries, deletion and embeddings."""

    @pytest.mark.asyncio
    async def test_stats(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        lineage = threads["aurora-lineage"]
        await make_pearl(public, "a", created_by="u1", instance_id="i1", pearl_type="insight")
        await make_pearl(public, "b", created_by="u2", instance_id="i1")
        last = await make_pearl(lineage, "c", created_by="u1", instance_id="i2", pearl_type="insight")

        stats = await PearlStore(db_session).stats(None)

        assert stats["total"] == 3
        assert stats["unique_creators"] == 2
        assert stats["unique_instances"] == 2
        assert stats["latest"] == last.created_at
        assert stats["by_type"] == {"insight": 2, "untyped": 1}
        assert stats["by_thread"] == {"public-reflections": 2, "aurora-lineage": 1}

    @pytest.mark.asyncio
    async def test_stats_empty_scope(self, db_session, threads, make_pearl):
        await make_pearl(threads["public-reflections"], "a")
        stats = await PearlStore(db_session).stats(set())
        assert stats["total"] == 0
        assert stats["earliest"] is None

    @pytest.mark.asyncio
    async def test_metadata_values_and_creator_count(self, db_session, threads, make_pearl):
        public = threads["public-reflections"]
        await make_pearl(public, "a", created_by="u1", metadata_={"model": "opus"})
        await make_pearl(public, "b", created_by="u1", metadata_={"model": "haiku"})
        await make_pearl(public, "c", created_by="u2", metadata_={"model": 3})
        store = PearlStore(db_session)

        assert await store.metadata_values("model") == ["haiku", "opus"]
        assert await store.count_by_creator("u1") == 2
        assert await store.count_by_creator("u1", set()) == 0

    @pytest.mark.asyncio
    async def test_delete(self, db_session, threads, make_pearl):
        pearl = await make_pearl(threads["public-reflections"], "gone soon")
        store = PearlStore(db_session)

        assert await store.delete(pearl.id) is True
        assert await store.delete(uuid.uuid4()) is False
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_embeddings(self, db_session, threads, make_pearl):
        with_vector = await make_pearl(threads["public-reflections"], "a", embedding=[1.0, 0.0])
        without = await make_pearl(threads["public-reflections"], "b")
        store = PearlStore(db_session)

        missing = await store.missing_embedding()
        assert [p.id for p in missing] == [without.id]

        await store.set_embedding(without.id, [0.0, 1.0])
        embedded = await store.embedded(None)
        assert {p.id: v for p, v in embedded} == {
            with_vector.id: [1.0, 0.0],
            without.id: [0.0, 1.0],
        }
