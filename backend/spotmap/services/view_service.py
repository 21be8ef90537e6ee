"""
SpotMap Backend: View Service
==============================

What:  Builds the four pages of the app (home, map, create, detail) and
       handles the two writes a page can trigger (create spot, comment).
Why:   Pages must load even when location or visit recording fails.
How:   Composes SpotRepository, AuthSession and the LocationProvider. Every
       backend call goes through the request's RequestScope, so leaving the
       request cancels whatever is still in flight.
Who:   routes/views.py.

Degradation rules:
    - Location failures never fail a page: the map falls back to the default
      center, the create form asks for a manual pick. Both carry a warning.
    - A missing focused spot on the map is logged and ignored.
    - Visit recording happens after the detail response and is logged only
      when it fails.
    - Input problems on the create form are reported before anything is
      sent to the repository.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap import database
from spotmap.config import settings
from spotmap.exceptions import (
    LocationPermissionError,
    LocationUnavailableError,
    NotFoundError,
    SpotMapError,
    ValidationError,
)
from spotmap.schemas.spot import (
    ANONYMOUS_USER_ID,
    ANONYMOUS_USER_NAME,
    Category,
    Comment,
    CommentDraft,
    Location,
    SpotDocument,
    SpotDraft,
)
from spotmap.schemas.views import CreateFormView, DetailView, HomeView, MapView
from spotmap.services.auth_session import AuthSession
from spotmap.services.location_base import LocationProvider
from spotmap.services.location_service import get_directions_url, location_provider
from spotmap.services.media_service import MediaService, PhotoUpload, media_service
from spotmap.services.request_scope import RequestScope
from spotmap.services.spot_repository import SpotRepository, spot_repository

logger = logging.getLogger(__name__)

MAP_LOCATION_WARNING = "Could not access your location. Using default location."
CREATE_LOCATION_WARNING = (
    "Could not access your location. Please manually select a location on the map."
)
SIGN_IN_TO_COMMENT = "Please sign in to comment"

FOCUSED_ZOOM = 16
USER_LOCATION_ZOOM = 14
DEFAULT_ZOOM = 12


def default_center() -> Location:
    return Location(lat=settings.default_center_lat, lng=settings.default_center_lng)


class ViewService:
    """
    Page assembly on top of the repository, session and location provider.

    Collaborators are injected so tests can substitute them; the module-level
    `view_service` uses the application singletons.
    """

    def __init__(
        self,
        repository: SpotRepository = spot_repository,
        locator: LocationProvider = location_provider,
        media: MediaService = media_service,
    ):
        self.repository = repository
        self.locator = locator
        self.media = media

    async def _locate(
        self, scope: RequestScope, client_key: Optional[str], warning: str
    ) -> Tuple[Optional[Location], Optional[str]]:
        """One location attempt; failures become (None, warning)."""
        try:
            fix = await scope.run(self.locator.get_current_location(client_key))
        except (LocationPermissionError, LocationUnavailableError) as e:
            logger.info("Location unavailable for %s: %s", client_key, e.message)
            return None, warning
        return fix, None

    # ── Home ──────────────────────────────────────────────────────────────

    async def home(self, db: AsyncSession, scope: RequestScope) -> HomeView:
        # One session cannot run two statements at once, so the two reads
        # are issued one after the other.
        featured = await scope.run(
            self.repository.get_featured_spot(db), timeout=settings.view_timeout_seconds
        )
        spots = await scope.run(
            self.repository.get_all_spots(db), timeout=settings.view_timeout_seconds
        )
        return HomeView(
            featured_spot=featured,
            featured_strategy=settings.featured_strategy,
            spots=spots,
        )

    # ── Map ───────────────────────────────────────────────────────────────

    async def map_view(
        self,
        db: AsyncSession,
        scope: RequestScope,
        client_key: Optional[str] = None,
        spot_id: Optional[str] = None,
        category: Optional[Category] = None,
    ) -> MapView:
        """
        Map page state.

        Center priority: focused spot (zoom 16), the caller's location
        (zoom 14), the default center (zoom 12).
        """
        user_location, warning = await self._locate(scope, client_key, MAP_LOCATION_WARNING)

        if category is not None:
            spots = await scope.run(
                self.repository.get_spots_by_category(db, category),
                timeout=settings.view_timeout_seconds,
            )
        else:
            spots = await scope.run(
                self.repository.get_all_spots(db), timeout=settings.view_timeout_seconds
            )

        focused: Optional[SpotDocument] = None
        if spot_id:
            try:
                focused = await scope.run(
                    self.repository.get_spot_by_id(db, spot_id),
                    timeout=settings.view_timeout_seconds,
                )
            except NotFoundError:
                logger.warning("Map focus requested for unknown spot %s", spot_id)

        if focused is not None:
            center, zoom = focused.location, FOCUSED_ZOOM
        elif user_location is not None:
            center, zoom = user_location, USER_LOCATION_ZOOM
        else:
            center, zoom = default_center(), DEFAULT_ZOOM

        return MapView(
            center=center,
            zoom=zoom,
            user_location=user_location,
            location_warning=warning,
            category=category,
            spots=spots,
            focused_spot=focused,
            tile_url=settings.map_tile_url,
            tile_attribution=settings.map_tile_attribution,
        )

    # ── Create ────────────────────────────────────────────────────────────

    async def create_form(
        self, scope: RequestScope, client_key: Optional[str] = None
    ) -> CreateFormView:
        initial, warning = await self._locate(scope, client_key, CREATE_LOCATION_WARNING)
        return CreateFormView(
            categories=list(Category),
            default_category=Category.GENERAL,
            max_photos=settings.max_photos_per_spot,
            initial_location=initial,
            location_warning=warning,
        )

    async def create_spot(
        self,
        db: AsyncSession,
        scope: RequestScope,
        session: AuthSession,
        description: str,
        location: Optional[Location],
        photos: Sequence[PhotoUpload],
        category: Category = Category.GENERAL,
        tags: Optional[List[str]] = None,
    ) -> SpotDocument:
        """
        Submit the create form.

        Raises:
            ValidationError: Missing description, location or photo, or a
                             photo that fails validation. Nothing has been
                             written when this is raised.
            DatabaseError: The insert failed
        """
        text = (description or "").strip()
        if not text:
            raise ValidationError(message="Please add a description", field="description")
        if location is None:
            raise ValidationError(
                message="Please select a location for your spot", field="location"
            )
        if not photos:
            raise ValidationError(message="Please add at least one image", field="photos")

        media = self.media.prepare_photos(photos)

        identity = session.current_identity()
        draft = SpotDraft(
            description=text,
            category=category,
            location=location,
            media=media,
            tags=tags or [],
            user_id=identity.uid if identity else ANONYMOUS_USER_ID,
            user_name=identity.label if identity else ANONYMOUS_USER_NAME,
        )
        return await scope.run(
            self.repository.create_spot(db, draft), timeout=settings.view_timeout_seconds
        )

    # ── Detail ────────────────────────────────────────────────────────────

    async def spot_detail(
        self,
        db: AsyncSession,
        scope: RequestScope,
        session: AuthSession,
        spot_id: str,
    ) -> DetailView:
        """
        Detail page for one spot.

        The load has a single timeout (detail_timeout_seconds). Timing out
        cancels the load and raises RequestTimeoutError; a load that
        finishes in time is always reported as a success.

        Raises:
            NotFoundError, RequestTimeoutError, DatabaseError
        """
        spot = await scope.run(
            self.repository.get_spot_by_id(db, spot_id),
            timeout=settings.detail_timeout_seconds,
        )
        signed_in = session.is_signed_in
        return DetailView(
            spot=spot,
            visit_count=spot.visit_count,
            directions_url=get_directions_url(spot.location.lat, spot.location.lng),
            map_path=f"/map?spotId={spot.id}",
            can_comment=signed_in,
            comment_hint=None if signed_in else SIGN_IN_TO_COMMENT,
        )

    async def record_visit(self, spot_id: str, user_id: str) -> bool:
        """
        Record a visit in its own session, after the detail response.

        Failures are logged and reported as False; they never reach the
        page that triggered the visit.
        """
        try:
            async with database.async_session_factory() as db:
                await self.repository.visit_spot(db, spot_id, user_id)
                await db.commit()
        except (SpotMapError, SQLAlchemyError) as e:
            logger.warning("Visit not recorded for spot %s: %s", spot_id, str(e))
            return False
        return True

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(
        self,
        db: AsyncSession,
        scope: RequestScope,
        session: AuthSession,
        spot_id: str,
        text: str,
    ) -> Comment:
        """
        Raises:
            AuthenticationError: Signed out ("Please sign in to comment")
            ValidationError: Blank comment
            NotFoundError, DatabaseError
        """
        identity = session.require_identity(SIGN_IN_TO_COMMENT)
        body = (text or "").strip()
        if not body:
            raise ValidationError(message="Please enter a comment", field="text")

        draft = CommentDraft(text=body, user_id=identity.uid, user_name=identity.label)
        return await scope.run(
            self.repository.add_comment(db, spot_id, draft),
            timeout=settings.view_timeout_seconds,
        )


view_service = ViewService()
