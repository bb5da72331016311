# =============================================================================
# core/models/views.py - Page View Models
# =============================================================================
# These models are the contract between the view service and the templates:
# - Destination: One difficulty-based category on the destinations page
# - TravelStory: One tour's most recent review, shaped as a story
# - StoryCategory: A rating-threshold bucket of stories
# - *Page: Everything one page template receives
#
# Tours inside page models stay plain dicts (lean reads, projected fields).
# =============================================================================

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .tour import Difficulty, TourDetail
from .user import UserPublic


class Destination(BaseModel):
    """
    A destination category.

    Example:
        {
            "name": "Mountain Adventures",
            "difficulty": "difficult",
            "tour_count": 3,
            "featured_tours": [{...}, {...}]
        }
    """
    name: str
    description: str
    image: str
    difficulty: Difficulty
    tour_count: int = Field(default=0, ge=0)
    featured_tours: list[dict[str, Any]] = Field(default_factory=list)


class TravelStory(BaseModel):
    """A travel story built from a tour and its most recent review."""
    id: str
    tour_name: str
    tour_image: str | None = None
    tour_slug: str
    story: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    author_photo: str
    rating: float
    date: datetime
    location: str
    duration: int


class StoryCategory(BaseModel):
    """Stories at or above a rating threshold."""
    name: str
    description: str
    icon: str
    min_rating: float
    stories: list[TravelStory] = Field(default_factory=list)


# =============================================================================
# Pages
# =============================================================================

class OverviewPage(BaseModel):
    title: str = "All Tours"
    tours: list[dict[str, Any]] = Field(default_factory=list)


class DestinationsPage(BaseModel):
    title: str = "Featured Destinations"
    destinations: list[Destination] = Field(default_factory=list)
    featured_tours: list[dict[str, Any]] = Field(default_factory=list)


class StoriesPage(BaseModel):
    title: str = "Travel Stories"
    travel_stories: list[TravelStory] = Field(default_factory=list)
    featured_stories: list[TravelStory] = Field(default_factory=list)
    story_categories: list[StoryCategory] = Field(default_factory=list)


class TourPage(BaseModel):
    title: str
    tour: TourDetail


class MyToursPage(BaseModel):
    title: str = "My Tours"
    tours: list[dict[str, Any]] = Field(default_factory=list)


class AccountPage(BaseModel):
    title: str = "Your account"
    user: UserPublic | None = None
