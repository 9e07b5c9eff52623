"""
Admin endpoints. Every route requires the admin role.
"""

import uuid

from fastapi import APIRouter, HTTPException, Query, status

from pearls.api.deps import AdminIdentity, DbSession
from pearls.kernel.models.base import utcnow
from pearls.kernel.store.pearls import PearlStore
from pearls.kernel.store.threads import ThreadStore
from pearls.logging_config import get_logger
from pearls.schemas.admin import AdminPearlPage, AdminStats, AdminThreadList, ThreadWithCount
from pearls.schemas.common import SuccessResponse
from pearls.schemas.pearl import PearlResponse
from pearls.schemas.thread import ThreadResponse

logger = get_logger(__name__)

router = APIRouter()


@router.get("/threads", response_model=AdminThreadList)
async def list_threads(admin: AdminIdentity, db: DbSession):
    """Every thread with its pearl count."""
    store = ThreadStore(db)
    threads = await store.list_threads()
    counts = await store.pearl_counts()
    return AdminThreadList(
        threads=[
            ThreadWithCount(
                **ThreadResponse.from_thread(thread).model_dump(),
                pearl_count=counts.get(thread.id, 0),
            )
            for thread in threads
        ]
    )


@router.get("/threads/{slug}/pearls", response_model=AdminPearlPage)
async def list_thread_pearls(
    slug: str,
    admin: AdminIdentity,
    db: DbSession,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Pearls in one thread, newest first."""
    thread = await ThreadStore(db).find_by_slug(slug)
    if thread is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")

    pearls = await PearlStore(db).query_recent([thread.id], limit=limit, offset=offset)
    return AdminPearlPage(
        thread=ThreadResponse.from_thread(thread),
        pearls=[PearlResponse.from_pearl(p, thread=thread.slug) for p in pearls],
        limit=limit,
        offset=offset,
    )


@router.get("/pearls/{pearl_id}", response_model=PearlResponse)
async def get_pearl(pearl_id: uuid.UUID, admin: AdminIdentity, db: DbSession):
    pearl = await PearlStore(db).get(pearl_id)
    if pearl is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pearl not found")
    thread = await ThreadStore(db).get(pearl.thread_id)
    return PearlResponse.from_pearl(pearl, thread=thread.slug if thread else None)


@router.delete("/pearls/{pearl_id}", response_model=SuccessResponse)
async def delete_pearl(pearl_id: uuid.UUID, admin: AdminIdentity, db: DbSession):
    deleted = await PearlStore(db).delete(pearl_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pearl not found")
    logger.info("Pearl deleted", extra={"pearl_id": str(pearl_id)})
    return SuccessResponse()


@router.get("/stats", response_model=AdminStats)
async def stats(admin: AdminIdentity, db: DbSession):
    return AdminStats(
        threads=await ThreadStore(db).count(),
        pearls=await PearlStore(db).count(),
        timestamp=utcnow(),
    )
