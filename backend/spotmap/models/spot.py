"""
SpotMap Backend: Spot SQLAlchemy Model
=======================================

What:  ORM model for the `spots` collection, one row per Spot document.
Why:   A spot is read and written as one document.
How:   Nested parts of the document (location, media, tags, visitors,
       comments) live in JSON columns; the fields that are filtered or
       ordered on (category, created_at) are plain columns.
Who:   Used by SpotRepository and by Alembic for schema management.

Table Design:
    - id: opaque UUID4 string assigned at creation, never changes
    - user_id / user_name: creator snapshot ("anonymous" when signed out)
    - location: {"lat": float, "lng": float}
    - description + media: the document's `content` part; media entries are
      inline base64 data URLs (at most 4)
    - category + created_at + tags: the document's `metadata` part
    - visitors + comments: the interaction log, append-only

    Index on category:
        Serves the map view's category filter.
    Index on (created_at, id):
        Serves keyset pagination of the spot list.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from spotmap.database import Base


class Spot(Base):
    """
    A user-submitted point of interest.

    Lifecycle:
        1. Inserted once by SpotRepository.create_spot (id, created_at assigned,
           visitors and comments empty)
        2. Mutated only by appending a visitor id or a comment
        3. Never edited or deleted
    """

    __tablename__ = "spots"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Opaque unique spot identifier (UUID4 string)",
    )

    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Creator id, or 'anonymous'",
    )
    user_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Creator display name snapshot at creation time",
    )

    location: Mapped[Dict[str, float]] = mapped_column(
        JSON,
        nullable=False,
        comment="{lat, lng}",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    media: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Inline encoded photos (data URLs), 0..4",
    )

    category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="general",
        server_default=text("'general'"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Set once at creation (UTC)",
    )
    tags: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    # The interaction log. Both lists are replaced (never mutated in place)
    # so SQLAlchemy detects the change on flush.
    visitors: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Visitor user ids, set semantics",
    )
    comments: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Embedded comments in insertion order",
    )

    __table_args__ = (
        Index("idx_spots_category", "category"),
        Index("idx_spots_created_at_id", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Spot(id={self.id}, category='{self.category}', "
            f"created_at='{self.created_at}')>"
        )
