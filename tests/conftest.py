"""
Pytest fixtures for Pearls tests.

Environment is pinned before any `pearls` import so cached settings, the
engine and the role resolver all see the test configuration.
"""

import itertools
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# File-based SQLite so the app engine and test sessions share one database
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["ADMIN_USER_IDS"] = "admin-user"
os.environ["COHORT_USER_IDS"] = "cohort-user"
os.environ["COHORT_ROLE"] = "aurora:member"
os.environ["OPENAI_API_KEY"] = ""
os.environ["BASE_URL"] = "http://test"
os.environ["DEBUG"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pearls.ai.embeddings import EmbeddingService  # noqa: E402
from pearls.config import get_settings  # noqa: E402
from pearls.kernel.identity.identity import Identity  # noqa: E402
from pearls.kernel.identity.jwt import JWTManager  # noqa: E402
from pearls.kernel.identity.roles import RoleResolver  # noqa: E402
from pearls.kernel.models import Base, Pearl, Permission, Thread  # noqa: E402
from pearls.kernel.store.threads import ThreadStore  # noqa: E402
from pearls.tools.base import OperationContext  # noqa: E402

get_settings.cache_clear()


def pytest_sessionfinish(session, exitstatus):
    """Clean up temp DB file after test run."""
    for path in (TEST_DB_PATH, f"{TEST_DB_PATH}-wal", f"{TEST_DB_PATH}-shm"):
        try:
            if os.path.exists(path):
                os.unlink(path)
        except OSError:
            pass


@pytest_asyncio.fixture
async def db_engine():
    """Private in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only",
        algorithm="HS256",
        access_token_expire_days=7,
    )


@pytest.fixture
def role_resolver() -> RoleResolver:
    return RoleResolver(
        admin_ids={"admin-user"},
        cohort_ids={"cohort-user"},
        cohort_role="aurora:member",
    )


# Identities

@pytest.fixture
def anonymous() -> Identity:
    return Identity.anonymous()


@pytest.fixture
def reader() -> Identity:
    return Identity.of("reader-user", ["authenticated"], email="reader@example.com")


@pytest.fixture
def member() -> Identity:
    return Identity.of("cohort-user", ["authenticated", "aurora:member"])


@pytest.fixture
def admin() -> Identity:
    return Identity.of("admin-user", ["authenticated", "admin"])


@pytest_asyncio.fixture
async def threads(db_session: AsyncSession) -> dict:
    """
    Three threads covering the access shapes:
    - public-reflections: public, cohort may write
    - aurora-lineage: private, cohort may write
    - rob-personal: private, admin only
    """
    store = ThreadStore(db_session)
    public = await store.insert_thread(
        slug="public-reflections",
        name="Public Reflections",
        description="Public pearls visible to all.",
        is_public=True,
    )
    await store.insert_grant(public.id, "anonymous", Permission.READ)
    await store.insert_grant(public.id, "authenticated", Permission.READ)
    await store.insert_grant(public.id, "aurora:member", Permission.WRITE)

    lineage = await store.insert_thread(
        slug="aurora-lineage",
        name="Aurora Lineage",
        description="Cohort transmissions.",
    )
    await store.insert_grant(lineage.id, "aurora:member", Permission.WRITE)
    await store.insert_grant(lineage.id, "admin", Permission.ADMIN)

    personal = await store.insert_thread(slug="rob-personal", name="Rob Personal")
    await store.insert_grant(personal.id, "admin", Permission.ADMIN)

    await db_session.commit()
    return {t.slug: t for t in (public, lineage, personal)}


@pytest.fixture
def make_pearl(db_session: AsyncSession):
    """Insert pearls with strictly increasing created_at, one minute apart."""
    base = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    counter = itertools.count()

    async def _make(thread: Thread, content: str, **fields) -> Pearl:
        fields.setdefault("created_at", base + timedelta(minutes=next(counter)))
        pearl = Pearl(thread_id=thread.id, content=content, **fields)
        db_session.add(pearl)
        await db_session.flush()
        return pearl

    return _make


@pytest.fixture
def make_ctx(db_session: AsyncSession):
    """Build an OperationContext; embeddings are disabled unless given."""

    def _make(identity: Identity, embeddings=None, enricher=None) -> OperationContext:
        return OperationContext(
            identity=identity,
            session=db_session,
            settings=get_settings(),
            embeddings=embeddings or EmbeddingService(api_key=""),
            enricher=enricher,
        )

    return _make
