"""
SpotMap Backend: View Schemas
==============================

What:  Payloads of the four addressable views (home, map, create, detail).
Who:   Built by ViewService, returned by routes/views.py.

Each view model carries everything its page renders, so a client needs one
round trip per page. Warnings are non-fatal messages (e.g. location denied)
that the page shows while still rendering.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from spotmap.schemas.spot import Category, Location, SpotDocument


class HomeView(BaseModel):
    """
    The landing page: featured spot plus every spot.

    featured_spot is whatever the configured featured strategy picks; with
    the default strategy that is the first spot of an unordered scan, not
    the most visited one.
    """
    featured_spot: Optional[SpotDocument] = None
    featured_strategy: str
    spots: List[SpotDocument] = Field(default_factory=list)


class MapView(BaseModel):
    center: Location
    zoom: int
    user_location: Optional[Location] = None
    location_warning: Optional[str] = None
    category: Optional[Category] = None
    spots: List[SpotDocument] = Field(default_factory=list)
    focused_spot: Optional[SpotDocument] = None
    tile_url: str
    tile_attribution: str


class CreateFormView(BaseModel):
    categories: List[Category]
    default_category: Category = Category.GENERAL
    max_photos: int
    initial_location: Optional[Location] = None
    location_warning: Optional[str] = None


class DetailView(BaseModel):
    spot: SpotDocument
    visit_count: int
    directions_url: str
    map_path: str
    can_comment: bool
    comment_hint: Optional[str] = None
