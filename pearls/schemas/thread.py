"""
Thread schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from pearls.kernel.models.base import as_utc
from pearls.kernel.models.thread import Permission, Thread

SLUG_PATTERN = r"^[a-z0-9-]+$"


class GrantSpec(BaseModel):
    role: str = Field(..., min_length=1)
    permission: Permission


class ThreadListArgs(BaseModel):
    """List visible threads."""

    include_public: bool = Field(True, description="Include public threads (default true)")


class ThreadCreateArgs(BaseModel):
    """Create a thread. Admin only."""

    slug: str = Field(
        ...,
        pattern=SLUG_PATTERN,
        max_length=100,
        description="URL-friendly identifier (lowercase alphanumeric and hyphens)",
    )
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    description: Optional[str] = Field(None, description="Thread description/purpose")
    is_public: bool = Field(False, description="Publicly readable (default false)")
    grant_access: List[GrantSpec] = Field(default_factory=list, description="Initial access grants")


class ThreadResponse(BaseModel):
    id: uuid.UUID
    slug: str
    name: str
    description: Optional[str] = None
    is_public: bool
    created_at: datetime

    @classmethod
    def from_thread(cls, thread: Thread) -> "ThreadResponse":
        return cls(
            id=thread.id,
            slug=thread.slug,
            name=thread.name,
            description=thread.description,
            is_public=thread.is_public,
            created_at=as_utc(thread.created_at),
        )


class ThreadListResult(BaseModel):
    count: int
    threads: List[ThreadResponse]


class ThreadCreateResult(BaseModel):
    success: bool = True
    thread: ThreadResponse
    grants: List[GrantSpec] = []
