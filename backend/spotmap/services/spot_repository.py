"""
SpotMap Backend: Spot Repository
=================================

What:  The only gateway to the `spots` collection. Creates Spot documents,
       reads them (full scan, category filter, by id, featured, paged) and
       applies the two interaction-log mutations (visit, comment).
Why:   Keeps SQL and document shape in one module; routes and views only
       see Spot documents.
How:   Async SQLAlchemy against the Spot row model; rows are converted to
       SpotDocument on the way out.
Who:   Called by the spot routes and by ViewService.
When:  Every read or write of spot data.

Error Handling Strategy:
    Every operation is a remote round trip. Driver/connection failures are
    logged once here and surface as DatabaseError; NotFoundError is raised
    for unknown ids. Nothing is retried and nothing is cached: repeated calls
    always re-read the store.

Write contract:
    - create_spot assigns id and created_at and starts with an empty
      interaction log
    - visit_spot is a set-union add under a row lock (duplicates impossible)
    - add_comment appends; earlier comments are never rewritten or reordered
"""

import base64
import binascii
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap.config import settings
from spotmap.exceptions import DatabaseError, NotFoundError, ValidationError
from spotmap.models.spot import Spot
from spotmap.schemas.spot import (
    Category,
    Comment,
    CommentDraft,
    SpotDocument,
    SpotDraft,
    SpotPage,
)

logger = logging.getLogger(__name__)

# Failures the document store can raise for a single round trip.
BACKEND_ERRORS = (SQLAlchemyError, OSError)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored time is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_document(row: Spot) -> SpotDocument:
    """Assemble the nested Spot document from its row."""
    return SpotDocument.model_validate(
        {
            "id": row.id,
            "userId": row.user_id,
            "userName": row.user_name,
            "location": row.location,
            "content": {
                "description": row.description,
                "media": list(row.media or []),
            },
            "metadata": {
                "category": row.category,
                "createdAt": _as_utc(row.created_at),
                "tags": list(row.tags or []),
            },
            "interactions": {
                "visitors": list(row.visitors or []),
                "comments": list(row.comments or []),
            },
        }
    )


def encode_cursor(row: Spot) -> str:
    payload = json.dumps({"created_at": row.created_at.isoformat(), "id": row.id})
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple:
    """Returns (created_at, id); raises ValidationError for anything malformed."""
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        return datetime.fromisoformat(payload["created_at"]), str(payload["id"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError):
        raise ValidationError(
            message="Invalid pagination cursor. Request the first page again.",
            field="cursor",
        )


class SpotRepository:
    """
    Stateless repository for Spot documents.

    Responsibilities:
        - create_spot():           insert a new Spot from a draft
        - get_all_spots():         unordered full scan
        - get_spots_by_category(): equality filter on metadata.category
        - get_spot_by_id():        single lookup, NotFoundError on miss
        - get_featured_spot():     one spot for the home view, or None
        - list_spots_page():       keyset-paginated listing
        - visit_spot():            add a visitor id (idempotent)
        - add_comment():           append a comment
    """

    def _backend_failure(
        self, operation: str, exc: Exception, **context: Any
    ) -> DatabaseError:
        logger.error("Spot store failure during %s: %s", operation, str(exc), exc_info=True)
        ctx: Dict[str, Any] = {"operation": operation, "error_type": type(exc).__name__}
        ctx.update(context)
        return DatabaseError(context=ctx)

    async def _load_row(
        self, db: AsyncSession, spot_id: str, lock: bool = False
    ) -> Spot:
        query = select(Spot).where(Spot.id == spot_id)
        if lock:
            # Row lock on PostgreSQL; SQLite serializes writers anyway.
            query = query.with_for_update()
        result = await db.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(resource="spot", resource_id=spot_id)
        return row

    # ── Create ────────────────────────────────────────────────────────────

    async def create_spot(self, db: AsyncSession, draft: SpotDraft) -> SpotDocument:
        """
        Insert a new Spot.

        What:    Assigns a UUID4 id and the server time as createdAt, stores
                 media inline, and starts the interaction log empty.
        Who:     POST /api/spots and the create view.

        Args:
            db: Async database session
            draft: Validated draft (description, category, location,
                   media 0..4, tags, creator snapshot)

        Returns:
            The fully hydrated SpotDocument, including the new id

        Raises:
            DatabaseError: The insert failed
        """
        row = Spot(
            id=str(uuid.uuid4()),
            user_id=draft.user_id,
            user_name=draft.user_name,
            location=draft.location.model_dump(),
            description=draft.description,
            media=list(draft.media),
            category=draft.category.value,
            created_at=datetime.now(timezone.utc),
            tags=list(draft.tags),
            visitors=[],
            comments=[],
        )
        try:
            db.add(row)
            await db.flush()
        except BACKEND_ERRORS as e:
            raise self._backend_failure("create_spot", e)

        logger.info(
            "Spot created: %s (category=%s, photos=%d, user=%s)",
            row.id,
            row.category,
            len(row.media),
            row.user_id,
        )
        return to_document(row)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_all_spots(self, db: AsyncSession) -> List[SpotDocument]:
        """Full scan of the collection. No ordering, no limit."""
        try:
            result = await db.execute(select(Spot))
            rows = result.scalars().all()
        except BACKEND_ERRORS as e:
            raise self._backend_failure("get_all_spots", e)
        return [to_document(row) for row in rows]

    async def get_spots_by_category(
        self, db: AsyncSession, category: Category
    ) -> List[SpotDocument]:
        """Every spot whose category equals `category`; [] when none match."""
        value = Category(category).value
        try:
            result = await db.execute(select(Spot).where(Spot.category == value))
            rows = result.scalars().all()
        except BACKEND_ERRORS as e:
            raise self._backend_failure("get_spots_by_category", e, category=value)
        return [to_document(row) for row in rows]

    async def get_spot_by_id(self, db: AsyncSession, spot_id: str) -> SpotDocument:
        """
        Single spot lookup.

        Raises:
            NotFoundError: No spot has this id (→ 404)
            DatabaseError: Query execution failed
        """
        try:
            row = await self._load_row(db, spot_id)
        except BACKEND_ERRORS as e:
            raise self._backend_failure("get_spot_by_id", e, spot_id=spot_id)
        return to_document(row)

    async def get_featured_spot(self, db: AsyncSession) -> Optional[SpotDocument]:
        """
        Pick the spot shown on the home view.

        With featured_strategy="first" (default) this is the first row of an
        unordered scan: it is NOT the most visited spot. "most_visited" ranks
        a full scan by visitor count, ties keeping scan order.

        Returns None for an empty collection.
        """
        try:
            if settings.featured_strategy == "most_visited":
                result = await db.execute(select(Spot))
                rows = list(result.scalars().all())
                if not rows:
                    return None
                row = max(rows, key=lambda r: len(r.visitors or []))
            else:
                result = await db.execute(select(Spot).limit(1))
                row = result.scalars().first()
        except BACKEND_ERRORS as e:
            raise self._backend_failure("get_featured_spot", e)

        return to_document(row) if row is not None else None

    async def list_spots_page(
        self,
        db: AsyncSession,
        category: Optional[Category] = None,
        limit: int = 20,
        cursor: Optional[str] = None,
    ) -> SpotPage:
        """
        Keyset-paginated listing, newest first.

        How:
            - Order by (created_at DESC, id DESC); id breaks timestamp ties
            - The cursor encodes the last row's (created_at, id)
            - One extra row is fetched to compute has_more

        Raises:
            ValidationError: The limit is below 1 or the cursor is malformed
            DatabaseError: Query execution failed
        """
        if limit < 1:
            raise ValidationError(message="Page size must be at least 1.", field="limit")

        query = select(Spot)
        if category is not None:
            query = query.where(Spot.category == Category(category).value)

        if cursor:
            cursor_at, cursor_id = decode_cursor(cursor)
            query = query.where(
                or_(
                    Spot.created_at < cursor_at,
                    and_(Spot.created_at == cursor_at, Spot.id < cursor_id),
                )
            )

        query = query.order_by(Spot.created_at.desc(), Spot.id.desc()).limit(limit + 1)

        try:
            result = await db.execute(query)
            rows = list(result.scalars().all())
        except BACKEND_ERRORS as e:
            raise self._backend_failure("list_spots_page", e)

        has_more = len(rows) > limit
        rows = rows[:limit]
        return SpotPage(
            spots=[to_document(row) for row in rows],
            next_cursor=encode_cursor(rows[-1]) if has_more and rows else None,
            has_more=has_more,
        )

    # ── Interaction Log ───────────────────────────────────────────────────

    async def visit_spot(self, db: AsyncSession, spot_id: str, user_id: str) -> bool:
        """
        Record that `user_id` visited the spot.

        Set semantics: visiting again leaves `visitors` unchanged. Callers
        treat this as fire-and-forget; failures still raise here so the
        caller decides whether to log or surface them.

        Raises:
            NotFoundError: Unknown spot
            DatabaseError: Update failed
        """
        try:
            row = await self._load_row(db, spot_id, lock=True)
            visitors = list(row.visitors or [])
            if user_id not in visitors:
                row.visitors = visitors + [user_id]
                await db.flush()
                logger.info("Visit recorded: spot=%s user=%s", spot_id, user_id)
            else:
                logger.debug("Repeat visit ignored: spot=%s user=%s", spot_id, user_id)
        except BACKEND_ERRORS as e:
            raise self._backend_failure("visit_spot", e, spot_id=spot_id)
        return True

    async def add_comment(
        self, db: AsyncSession, spot_id: str, draft: CommentDraft
    ) -> Comment:
        """
        Append a comment to the spot's comment log.

        What:    Assigns a UUID4 id and the server time as timestamp, appends
                 the entry after all existing comments.
        Returns: The stored Comment.

        Raises:
            NotFoundError: Unknown spot
            DatabaseError: Update failed
        """
        entry = {
            "id": str(uuid.uuid4()),
            "userId": draft.user_id,
            "userName": draft.user_name,
            "text": draft.text,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            row = await self._load_row(db, spot_id, lock=True)
            row.comments = list(row.comments or []) + [entry]
            await db.flush()
        except BACKEND_ERRORS as e:
            raise self._backend_failure("add_comment", e, spot_id=spot_id)

        logger.info("Comment %s added to spot %s by %s", entry["id"], spot_id, draft.user_id)
        return Comment.model_validate(entry)


spot_repository = SpotRepository()
