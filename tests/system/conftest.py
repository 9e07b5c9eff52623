"""
System test fixtures: the full app in-process over the temp-file SQLite DB
configured in the root conftest.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pearls.api.deps import get_db
from pearls.config import get_settings
from pearls.kernel.identity.api_keys import ApiKeyRepository
from pearls.kernel.identity.jwt import get_jwt_manager
from pearls.kernel.models import Base, Permission
from pearls.kernel.store.threads import ThreadStore
from pearls.main import app

TEST_ENGINE = create_async_engine(
    get_settings().database_url,
    echo=False,
    connect_args={"check_same_thread": False},
)
TEST_SESSION_MAKER = async_sessionmaker(
    TEST_ENGINE,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TEST_SESSION_MAKER() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest_asyncio.fixture
async def client():
    """Async client over a freshly created schema."""
    async with TEST_ENGINE.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)
        await TEST_ENGINE.dispose()


@pytest_asyncio.fixture
async def seeded(client) -> dict:
    """Public and cohort-only threads, mirroring the default seed."""
    async with TEST_SESSION_MAKER() as session:
        store = ThreadStore(session)
        public = await store.insert_thread(
            "public-reflections", "Public Reflections", "Public pearls visible to all.", is_public=True
        )
        await store.insert_grant(public.id, "anonymous", Permission.READ)
        await store.insert_grant(public.id, "authenticated", Permission.READ)
        await store.insert_grant(public.id, "aurora:member", Permission.WRITE)

        lineage = await store.insert_thread("aurora-lineage", "Aurora Lineage", "Cohort transmissions.")
        await store.insert_grant(lineage.id, "aurora:member", Permission.WRITE)
        await session.commit()
        return {"public-reflections": public, "aurora-lineage": lineage}


def bearer(user_id: str, email: str = None) -> dict:
    token, _ = get_jwt_manager().create_access_token(user_id, email, ["authenticated"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return bearer("admin-user", "admin@example.com")


@pytest.fixture
def member_headers() -> dict:
    return bearer("cohort-user", "cohort@example.com")


@pytest.fixture
def reader_headers() -> dict:
    return bearer("reader-user")


@pytest_asyncio.fixture
async def api_key_headers(client) -> dict:
    async with TEST_SESSION_MAKER() as session:
        _, raw = await ApiKeyRepository(session).create(
            "system test", "svc-user", ["authenticated", "aurora:member"]
        )
        await session.commit()
    return {"Authorization": f"Bearer {raw}"}
