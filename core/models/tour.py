# =============================================================================
# core/models/tour.py - Tour Schemas
# =============================================================================
# These models describe the stored shape of a tour document and the
# populated detail returned for the tour page:
# - Difficulty: Enum of the three difficulty levels
# - TourReview / Guide: Populated relations of a tour
# - TourDetail: Tour document with reviews and guides expanded
#
# Documents keep their stored camelCase field names; Python attributes
# use snake_case and read the stored names through aliases.
# =============================================================================

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):
    """
    Difficulty levels a tour can have.

    The three values partition every tour into one destination category.
    """
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


class DocumentModel(BaseModel):
    """Base for models validated from stored documents."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id", mode="before", check_fields=False)
    @classmethod
    def stringify_id(cls, value):
        """ObjectIds are exposed as strings."""
        return str(value) if value is not None else value


class StartLocation(BaseModel):
    """GeoJSON point where a tour starts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str | None = None
    address: str | None = None
    coordinates: list[float] = Field(default_factory=list)


class ReviewAuthor(DocumentModel):
    """Owning user of a review, projected to name and photo."""
    id: str | None = Field(default=None, alias="_id")
    name: str | None = None
    photo: str | None = None


class TourReview(DocumentModel):
    """A review expanded onto the tour page."""

    id: str = Field(..., alias="_id")
    review: str | None = None
    rating: float | None = Field(default=None, ge=1, le=5)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    user: ReviewAuthor | None = None


class Guide(DocumentModel):
    """A guide expanded onto the tour page."""

    id: str = Field(..., alias="_id")
    name: str
    photo: str | None = None
    role: str | None = None


class TourDetail(DocumentModel):
    """
    Everything the tour page renders.

    Returned by ViewService.get_tour with both relations populated.
    """

    id: str = Field(..., alias="_id")
    name: str
    slug: str
    price: float
    ratings_average: float = Field(default=4.5, alias="ratingsAverage")
    ratings_quantity: int = Field(default=0, alias="ratingsQuantity")
    difficulty: Difficulty
    duration: int
    max_group_size: int | None = Field(default=None, alias="maxGroupSize")
    summary: str | None = None
    description: str | None = None
    image_cover: str | None = Field(default=None, alias="imageCover")
    images: list[str] = Field(default_factory=list)
    start_dates: list[datetime] = Field(default_factory=list, alias="startDates")
    start_location: StartLocation | None = Field(default=None, alias="startLocation")
    reviews: list[TourReview] = Field(default_factory=list)
    guides: list[Guide] = Field(default_factory=list)
