"""
SpotMap Backend: Spot Document Schemas
=======================================

What:  Pydantic models for the Spot aggregate and the drafts that create or
       extend it.
How:   The JSON wire format uses the document's camelCase keys (`userId`,
       `createdAt`, ...) through field aliases; Python code uses snake_case
       attribute names. `populate_by_name` accepts either on input.
Who:   Returned by SpotRepository and the routes; drafts are accepted by the
       repository's write operations.

Document shape:
    {
        "id": "5b0d...",
        "userId": "anonymous",
        "userName": "Anonymous User",
        "location": {"lat": 37.77, "lng": -122.41},
        "content": {"description": "Best tacos", "media": ["data:image/jpeg;base64,..."]},
        "metadata": {"category": "food", "createdAt": "2024-01-15T12:00:00Z", "tags": []},
        "interactions": {"visitors": ["u1"], "comments": [{...}]}
    }
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ANONYMOUS_USER_ID = "anonymous"
ANONYMOUS_USER_NAME = "Anonymous User"
MAX_MEDIA_PER_SPOT = 4


class Category(str, Enum):
    """The fixed set of spot categories."""

    GENERAL = "general"
    FOOD = "food"
    NATURE = "nature"
    ART = "art"


def _require_text(value: str, label: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{label} must not be empty")
    return stripped


# ══════════════════════════════════════════════════════════════════════════
# Document Parts
# ══════════════════════════════════════════════════════════════════════════


class Location(BaseModel):
    """A coordinate pair. No range clamping is applied."""

    lat: float
    lng: float


class SpotContent(BaseModel):
    description: str
    media: List[str] = Field(default_factory=list, max_length=MAX_MEDIA_PER_SPOT)


class SpotMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: Category
    created_at: datetime = Field(alias="createdAt")
    tags: List[str] = Field(default_factory=list)


class Comment(BaseModel):
    """
    One entry of a spot's comment log.

    `id` is unique within the parent spot; `user_id`/`user_name` are the
    commenter snapshot at submission; `timestamp` is server time.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    text: str
    timestamp: datetime


class SpotInteractions(BaseModel):
    """The interaction log: visitors (set semantics) and comments (append-only)."""

    visitors: List[str] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)


class SpotDocument(BaseModel):
    """The full Spot aggregate as stored and returned."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    location: Location
    content: SpotContent
    metadata: SpotMetadata
    interactions: SpotInteractions = Field(default_factory=SpotInteractions)

    @property
    def visit_count(self) -> int:
        return len(self.interactions.visitors)

    @property
    def cover_image(self) -> Optional[str]:
        return self.content.media[0] if self.content.media else None


class SpotPage(BaseModel):
    """
    One page of the keyset-paginated spot list.

    next_cursor is opaque to the client; pass it back unchanged to continue.
    """

    spots: List[SpotDocument]
    next_cursor: Optional[str] = None
    has_more: bool = False


# ══════════════════════════════════════════════════════════════════════════
# Drafts: What callers send to create or extend a Spot
# ══════════════════════════════════════════════════════════════════════════


class SpotCreateRequest(BaseModel):
    """
    Body of POST /api/spots.

    Media entries must already be inline image data URLs. Zero photos are
    accepted here; only the create view insists on at least one.
    """

    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(max_length=5000)
    category: Category = Category.GENERAL
    location: Location
    media: List[str] = Field(default_factory=list, max_length=MAX_MEDIA_PER_SPOT)
    tags: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _require_text(v, "description")

    @field_validator("media")
    @classmethod
    def validate_media(cls, v: List[str]) -> List[str]:
        for entry in v:
            if not entry.startswith("data:image/") or ";base64," not in entry:
                raise ValueError("media entries must be base64 image data URLs")
        return v


class SpotDraft(SpotCreateRequest):
    """A create request plus the creator snapshot taken from the session."""

    user_id: str = Field(default=ANONYMOUS_USER_ID, alias="userId")
    user_name: str = Field(default=ANONYMOUS_USER_NAME, alias="userName")


class CommentRequest(BaseModel):
    """Body of the comment endpoints. Text is trimmed and must not be empty."""

    text: str = Field(max_length=2000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _require_text(v, "text")


class CommentDraft(CommentRequest):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")


class VisitResponse(BaseModel):
    spot_id: str
    recorded: bool = True
