"""
Thread and thread access models.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pearls.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow

if TYPE_CHECKING:
    from pearls.kernel.models.pearl import Pearl


class Permission(str, Enum):
    """Thread permission levels. admin includes write, write includes read."""
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


class Thread(Base, TimestampMixin):
    """A named, independently access-controlled pearl container."""

    __tablename__ = "threads"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    slug: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    grants: Mapped[List["ThreadAccess"]] = relationship(
        "ThreadAccess",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    pearls: Mapped[List["Pearl"]] = relationship(
        "Pearl",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_threads_public", "is_public"),
    )

    def __repr__(self) -> str:
        return f"<Thread {self.slug}>"


class ThreadAccess(Base):
    """Grant: any identity holding `role` has at least `permission` on the thread."""

    __tablename__ = "thread_access"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("threads.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    permission: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    thread: Mapped["Thread"] = relationship("Thread", back_populates="grants")

    __table_args__ = (
        UniqueConstraint("thread_id", "role", "permission", name="uq_thread_access_grant"),
        Index("idx_access_thread_role", "thread_id", "role"),
    )

    def __repr__(self) -> str:
        return f"<ThreadAccess thread={self.thread_id} {self.role}:{self.permission}>"
