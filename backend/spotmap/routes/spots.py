"""
SpotMap Backend: Spot Route Handlers
=====================================

What:  The spot repository over HTTP: list, filter, page, featured, lookup,
       create, visit and comment.
Why:   Raw document access for clients that render spots themselves.
       Writes that name a person take the person from the session.
How:   Thin handlers. Validation is done by the Pydantic request models and
       the repository; errors are formatted by the global handlers.
Who:   API clients that work with raw Spot documents. The pages use
       routes/views.py instead.

Listing modes (GET /api/spots):
    no limit/cursor        → full scan (optionally filtered by category), list
    limit and/or cursor    → keyset page {spots, next_cursor, has_more}
"""

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap.database import get_db_session
from spotmap.schemas.common import ErrorResponse
from spotmap.schemas.spot import (
    Category,
    ANONYMOUS_USER_ID,
    ANONYMOUS_USER_NAME,
    Comment,
    CommentDraft,
    CommentRequest,
    SpotCreateRequest,
    SpotDocument,
    SpotDraft,
    SpotPage,
    VisitResponse,
)
from spotmap.services.auth_session import AuthSession, get_auth_session
from spotmap.services.spot_repository import spot_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/spots", tags=["Spots"])


@router.get(
    "",
    response_model=Union[SpotPage, List[SpotDocument]],
    responses={
        400: {"description": "Invalid cursor", "model": ErrorResponse},
        503: {"description": "Spot store unavailable", "model": ErrorResponse},
    },
    summary="List spots",
)
async def list_spots(
    response: Response,
    category: Optional[Category] = Query(default=None, description="Only spots of this category"),
    limit: Optional[int] = Query(default=None, ge=1, le=100, description="Page size; enables paging"),
    cursor: Optional[str] = Query(default=None, description="next_cursor from the previous page"),
    db: AsyncSession = Depends(get_db_session),
):
    if limit is not None or cursor is not None:
        return await spot_repository.list_spots_page(
            db, category=category, limit=limit or 20, cursor=cursor
        )

    if category is not None:
        spots = await spot_repository.get_spots_by_category(db, category)
    else:
        spots = await spot_repository.get_all_spots(db)
    response.headers["X-Total-Count"] = str(len(spots))
    return spots


@router.get(
    "/featured",
    response_model=Optional[SpotDocument],
    summary="The featured spot, or null for an empty collection",
)
async def get_featured_spot(
    db: AsyncSession = Depends(get_db_session),
) -> Optional[SpotDocument]:
    return await spot_repository.get_featured_spot(db)


@router.get(
    "/{spot_id}",
    response_model=SpotDocument,
    responses={404: {"description": "Spot not found", "model": ErrorResponse}},
    summary="Get a single spot by ID",
)
async def get_spot(
    spot_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> SpotDocument:
    return await spot_repository.get_spot_by_id(db, spot_id)


@router.post(
    "",
    status_code=201,
    response_model=SpotDocument,
    responses={
        422: {"description": "Malformed draft"},
        503: {"description": "Spot store unavailable", "model": ErrorResponse},
    },
    summary="Create a spot from a JSON draft",
    description=(
        "Media must be inline image data URLs (at most 4). Zero photos are "
        "accepted here; the create page requires at least one. The creator is "
        "the signed-in user, or anonymous without a bearer token."
    ),
)
async def create_spot(
    body: SpotCreateRequest,
    db: AsyncSession = Depends(get_db_session),
    session: AuthSession = Depends(get_auth_session),
) -> SpotDocument:
    identity = session.current_identity()
    draft = SpotDraft(
        **body.model_dump(),
        user_id=identity.uid if identity else ANONYMOUS_USER_ID,
        user_name=identity.label if identity else ANONYMOUS_USER_NAME,
    )
    return await spot_repository.create_spot(db, draft)


@router.post(
    "/{spot_id}/visits",
    response_model=VisitResponse,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Spot not found", "model": ErrorResponse},
    },
    summary="Record a visit by the signed-in user (idempotent)",
)
async def visit_spot(
    spot_id: str,
    db: AsyncSession = Depends(get_db_session),
    session: AuthSession = Depends(get_auth_session),
) -> VisitResponse:
    identity = session.require_identity("Please sign in to record a visit")
    recorded = await spot_repository.visit_spot(db, spot_id, identity.uid)
    return VisitResponse(spot_id=spot_id, recorded=recorded)


@router.post(
    "/{spot_id}/comments",
    status_code=201,
    response_model=Comment,
    responses={
        401: {"description": "Please sign in to comment", "model": ErrorResponse},
        404: {"description": "Spot not found", "model": ErrorResponse},
    },
    summary="Append a comment as the signed-in user",
)
async def add_comment(
    spot_id: str,
    body: CommentRequest,
    db: AsyncSession = Depends(get_db_session),
    session: AuthSession = Depends(get_auth_session),
) -> Comment:
    identity = session.require_identity("Please sign in to comment")
    draft = CommentDraft(text=body.text, user_id=identity.uid, user_name=identity.label)
    return await spot_repository.add_comment(db, spot_id, draft)
