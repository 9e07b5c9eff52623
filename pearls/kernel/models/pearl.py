"""
Pearl model - a single unit of text content belonging to one thread.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pearls.kernel.models.base import Base, generate_uuid, utcnow

if TYPE_CHECKING:
    from pearls.kernel.models.thread import Thread


class PearlType(str, Enum):
    """What kind of content a pearl carries."""
    EXPERIENCE = "experience"
    INSIGHT = "insight"
    FRAMEWORK = "framework"
    TRANSMISSION = "transmission"
    META = "meta"


class AuthorshipType(str, Enum):
    """The author's relationship to the content."""
    DIRECT_EXPERIENCE = "direct_experience"
    INHERITED_PATTERN = "inherited_pattern"
    SYNTHESIS = "synthesis"


class PearlStatus(str, Enum):
    """Correction status. active -> corrected is one-directional."""
    ACTIVE = "active"
    CORRECTED = "corrected"
    CONTESTED = "contested"


class Pearl(Base):
    """Pearl (text note) record."""

    __tablename__ = "pearls"

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
    title: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    # Opaque to the core; only a few known keys are ever read by name.
    metadata_: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSON(none_as_null=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    instance_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    in_reply_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    pearl_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    authorship_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=PearlStatus.ACTIVE.value,
        nullable=False,
    )
    # Set on the correcting pearl; points at the pearl it corrects.
    parent_pearl: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    # Filled in asynchronously after creation when embeddings are enabled
    embedding: Mapped[Optional[List[float]]] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
        deferred=True,
    )

    thread: Mapped["Thread"] = relationship("Thread", back_populates="pearls")

    __table_args__ = (
        Index("idx_pearls_thread", "thread_id"),
        Index("idx_pearls_created", "created_at"),
        Index("idx_pearls_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Pearl {self.id} thread={self.thread_id}>"
