"""
SpotMap Backend: View Route Handlers
=====================================

What:  One endpoint per page of the app (home, map, create, detail) plus the
       page-level writes (submit the create form, comment on a spot).
Why:   Each page is assembled server-side so failures degrade the same way
       for every client.
How:   Each handler gets a database session, the caller's AuthSession and a
       RequestScope, and delegates to ViewService. The scope closes with the
       request, cancelling any backend call still in flight.
Who:   The web client, one round trip per page.

Pages:
    GET  /api/views/home
    GET  /api/views/map?spotId=&category=
    GET  /api/views/create
    POST /api/views/create                  multipart form
    GET  /api/views/spots/{spot_id}
    POST /api/views/spots/{spot_id}/comments
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap.database import get_db_session
from spotmap.routes.location import client_key
from spotmap.schemas.common import ErrorResponse
from spotmap.schemas.spot import Category, Comment, CommentRequest, Location, SpotDocument
from spotmap.schemas.views import CreateFormView, DetailView, HomeView, MapView
from spotmap.services.auth_session import AuthSession, get_auth_session
from spotmap.services.media_service import PhotoUpload
from spotmap.services.request_scope import RequestScope, get_request_scope
from spotmap.services.view_service import view_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/views", tags=["Views"])


@router.get("/home", response_model=HomeView, summary="Home page")
async def home(
    db: AsyncSession = Depends(get_db_session),
    scope: RequestScope = Depends(get_request_scope),
) -> HomeView:
    return await view_service.home(db, scope)


@router.get("/map", response_model=MapView, summary="Map page")
async def map_page(
    request: Request,
    spot_id: Optional[str] = Query(default=None, alias="spotId", description="Spot to center on"),
    category: Optional[Category] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
    scope: RequestScope = Depends(get_request_scope),
) -> MapView:
    return await view_service.map_view(
        db, scope, client_key=client_key(request), spot_id=spot_id, category=category
    )


@router.get("/create", response_model=CreateFormView, summary="Create page")
async def create_form(
    request: Request,
    scope: RequestScope = Depends(get_request_scope),
) -> CreateFormView:
    return await view_service.create_form(scope, client_key=client_key(request))


@router.post(
    "/create",
    status_code=201,
    response_model=SpotDocument,
    responses={
        400: {"description": "Missing description, location or photo", "model": ErrorResponse},
        503: {"description": "Spot store unavailable", "model": ErrorResponse},
    },
    summary="Submit the create form",
)
async def submit_create(
    description: str = Form(default=""),
    category: Category = Form(default=Category.GENERAL),
    lat: Optional[float] = Form(default=None),
    lng: Optional[float] = Form(default=None),
    tags: Optional[str] = Form(default=None, description="Comma-separated tags"),
    photos: Optional[List[UploadFile]] = File(default=None, description="Up to 4 images"),
    db: AsyncSession = Depends(get_db_session),
    session: AuthSession = Depends(get_auth_session),
    scope: RequestScope = Depends(get_request_scope),
) -> SpotDocument:
    location = Location(lat=lat, lng=lng) if lat is not None and lng is not None else None
    uploads = []
    for upload in photos or []:
        try:
            uploads.append(
                PhotoUpload(
                    filename=upload.filename or "photo.jpg",
                    content=await upload.read(),
                    content_length=upload.size,
                )
            )
        finally:
            await upload.close()

    tag_list = [t.strip() for t in (tags or "").split(",") if t.strip()]
    logger.info("Create form submitted with %d photo(s)", len(uploads))
    return await view_service.create_spot(
        db,
        scope,
        session,
        description=description,
        location=location,
        photos=uploads,
        category=category,
        tags=tag_list,
    )


@router.get(
    "/spots/{spot_id}",
    response_model=DetailView,
    responses={
        404: {"description": "Spot not found", "model": ErrorResponse},
        504: {"description": "Loading took too long", "model": ErrorResponse},
    },
    summary="Spot detail page",
)
async def spot_detail(
    spot_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
    session: AuthSession = Depends(get_auth_session),
    scope: RequestScope = Depends(get_request_scope),
) -> DetailView:
    detail = await view_service.spot_detail(db, scope, session, spot_id)
    identity = session.current_identity()
    if identity is not None:
        background_tasks.add_task(view_service.record_visit, spot_id, identity.uid)
    return detail


@router.post(
    "/spots/{spot_id}/comments",
    status_code=201,
    response_model=Comment,
    responses={
        401: {"description": "Please sign in to comment", "model": ErrorResponse},
        404: {"description": "Spot not found", "model": ErrorResponse},
    },
    summary="Comment on a spot",
)
async def comment(
    spot_id: str,
    body: CommentRequest,
    db: AsyncSession = Depends(get_db_session),
    session: AuthSession = Depends(get_auth_session),
    scope: RequestScope = Depends(get_request_scope),
) -> Comment:
    return await view_service.add_comment(db, scope, session, spot_id, body.text)
