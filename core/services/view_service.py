# =============================================================================
# core/services/view_service.py - Page View Assembly
# =============================================================================
# For each page, gather exactly the data its template needs and shape it
# into a page view model:
# - Reads are projected and lean (plain dicts)
# - Independent reads for one page run concurrently (first failure wins)
# - Dependent reads run strictly in order
#
# Failures are raised as domain errors; HTTP concerns stay in app/.
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pydantic import ValidationError

from app.exceptions import NotFoundError, TourNotFoundError, ValidationFailedError
from core.models.tour import Difficulty, TourDetail
from core.models.user import UserDataUpdate, UserPublic
from core.models.views import (
    AccountPage,
    Destination,
    DestinationsPage,
    MyToursPage,
    OverviewPage,
    StoriesPage,
    StoryCategory,
    TourPage,
    TravelStory,
)
from core.services.booking_service import BookingService
from core.services.tour_service import TourService
from core.services.user_service import UserService
from lib.utils import gather_first_failure, resolve_defaults, to_str_id

logger = logging.getLogger(__name__)


# =============================================================================
# Page Constants
# =============================================================================

FEATURED_MIN_RATING = 4.5
FEATURED_LIMIT = 6
FEATURED_PER_DESTINATION = 2

# One entry per difficulty; together they cover every tour
DESTINATION_CATEGORIES: list[dict[str, Any]] = [
    {
        "name": "Mountain Adventures",
        "description": "Conquer the world's most breathtaking peaks",
        "image": "tour-1-cover.jpg",
        "difficulty": Difficulty.DIFFICULT,
    },
    {
        "name": "Coastal Escapes",
        "description": "Discover pristine beaches and coastal wonders",
        "image": "tour-2-cover.jpg",
        "difficulty": Difficulty.EASY,
    },
    {
        "name": "Cultural Journeys",
        "description": "Immerse yourself in rich traditions and history",
        "image": "tour-3-cover.jpg",
        "difficulty": Difficulty.MEDIUM,
    },
]

STORY_MIN_REVIEWS = 5
STORY_TOUR_LIMIT = 8
FEATURED_STORIES = 3
STORIES_PER_CATEGORY = 2

# Not mutually exclusive: a story can land in several categories
STORY_CATEGORIES: list[dict[str, Any]] = [
    {
        "name": "Adventure Stories",
        "description": "Epic tales from the world's most challenging adventures",
        "icon": "icon-trending-up",
        "min_rating": 4.5,
    },
    {
        "name": "Cultural Experiences",
        "description": "Heartwarming stories of cultural discovery and connection",
        "icon": "icon-users",
        "min_rating": 4.0,
    },
    {
        "name": "Hidden Gems",
        "description": "Discoveries of secret places and unexpected adventures",
        "icon": "icon-map-pin",
        "min_rating": 4.2,
    },
]

# Applied to every story before validation
STORY_DEFAULTS: dict[str, Any] = {
    "author_photo": "default.jpg",
    "rating": 0,
    "date": lambda: datetime.now(timezone.utc),
    "location": "Unknown location",
    "duration": 0,
}

BOOKING_ALERT = (
    "Your booking was successfull! Please check your email for confirmation. "
    "If your booking doesn't show here immediately, please come back later."
)


# =============================================================================
# Assembly Helpers
# =============================================================================

def build_destinations(
    featured_tours: list[dict[str, Any]],
    difficulties: list[dict[str, Any]],
) -> list[Destination]:
    """
    Partition tours into the difficulty-based destination categories.

    Args:
        featured_tours: Top-rated tours (projected)
        difficulties: Every tour projected to its difficulty

    Returns:
        One Destination per category with its count and up to two featured tours
    """
    destinations = []
    for category in DESTINATION_CATEGORIES:
        difficulty = category["difficulty"].value
        destinations.append(
            Destination(
                **category,
                tour_count=sum(1 for t in difficulties if t.get("difficulty") == difficulty),
                featured_tours=[
                    t for t in featured_tours if t.get("difficulty") == difficulty
                ][:FEATURED_PER_DESTINATION],
            )
        )
    return destinations


def build_story(tour: dict[str, Any]) -> TravelStory | None:
    """
    Shape a tour and its most recent review into a travel story.

    Returns None when the tour has no usable review: missing review text,
    missing author, or an author without a name. Such tours are dropped.
    """
    reviews = tour.get("reviews") or []
    if not reviews:
        return None

    review = reviews[-1]
    author = review.get("user") or {}
    if not review.get("review") or not author.get("name"):
        return None

    record = resolve_defaults(
        {
            "id": str(tour["_id"]),
            "tour_name": tour.get("name"),
            "tour_image": tour.get("imageCover"),
            "tour_slug": tour.get("slug"),
            "story": review["review"],
            "author": author["name"],
            "author_photo": author.get("photo"),
            "rating": review.get("rating"),
            "date": review.get("createdAt"),
            "location": (tour.get("startLocation") or {}).get("description"),
            "duration": tour.get("duration"),
        },
        STORY_DEFAULTS,
    )
    return TravelStory(**record)


def build_story_categories(stories: list[TravelStory]) -> list[StoryCategory]:
    """Bucket stories by rating threshold, keeping the first two per bucket."""
    return [
        StoryCategory(
            **category,
            stories=[s for s in stories if s.rating >= category["min_rating"]][:STORIES_PER_CATEGORY],
        )
        for category in STORY_CATEGORIES
    ]


def alert_message(alert: str | None) -> str | None:
    """Human-readable status message for an `alert` query flag."""
    if alert == "booking":
        return BOOKING_ALERT
    return None


# =============================================================================
# View Service
# =============================================================================

class ViewService:
    """
    Builds the view model of every data-backed page.

    Example:
        service = ViewService(TourService(db), BookingService(db), UserService(db))
        page = await service.get_destinations()
    """

    def __init__(
        self,
        tours: TourService,
        bookings: BookingService,
        users: UserService,
    ):
        self.tours = tours
        self.bookings = bookings
        self.users = users

    async def get_overview(self) -> OverviewPage:
        """All tours, projected to what a tour card renders."""
        tours = await self.tours.list_tours()
        return OverviewPage(tours=[to_str_id(t) for t in tours])

    async def get_destinations(self) -> DestinationsPage:
        """
        Destination categories with counts and featured tours.

        The featured read and the difficulty read are independent and run
        concurrently; if either fails, nothing is assembled.
        """
        featured, difficulties = await gather_first_failure(
            self.tours.list_top_rated(min_rating=FEATURED_MIN_RATING, limit=FEATURED_LIMIT),
            self.tours.list_difficulties(),
        )
        featured = [to_str_id(t) for t in featured]

        return DestinationsPage(
            destinations=build_destinations(featured, difficulties),
            featured_tours=featured,
        )

    async def get_stories(self) -> StoriesPage:
        """
        Travel stories from the most recent review of well-reviewed tours.

        Tours without a valid review are left out entirely.
        """
        tours = await self.tours.list_with_latest_review(
            min_reviews=STORY_MIN_REVIEWS,
            limit=STORY_TOUR_LIMIT,
        )

        stories = []
        for tour in tours:
            story = build_story(tour)
            if story is None:
                logger.debug(f"Skipping tour {tour.get('_id')} without a valid review")
                continue
            stories.append(story)

        return StoriesPage(
            travel_stories=stories,
            featured_stories=stories[:FEATURED_STORIES],
            story_categories=build_story_categories(stories),
        )

    async def get_tour(self, slug: str) -> TourPage:
        """
        One tour with reviews and guides expanded.

        Raises:
            TourNotFoundError: If no tour has this slug
        """
        doc = await self.tours.get_by_slug_with_details(slug)
        if not doc:
            raise TourNotFoundError()

        tour = TourDetail.model_validate(doc)
        return TourPage(title=f"{tour.name} Tour", tour=tour)

    async def get_my_tours(self, user_id: str) -> MyToursPage:
        """
        Tours the user has booked.

        Two dependent reads: bookings first, then the tours they reference.
        """
        tour_ids = await self.bookings.list_tour_ids_for_user(user_id)
        tours = await self.tours.list_by_ids(tour_ids)
        return MyToursPage(tours=[to_str_id(t) for t in tours])

    async def update_user_data(
        self,
        user_id: str,
        form: dict[str, Any],
    ) -> AccountPage:
        """
        Update the user's name and email from the account form.

        Raises:
            ValidationFailedError: If either field is invalid or the email is taken
            NotFoundError: If the user no longer exists
        """
        try:
            data = UserDataUpdate(name=form.get("name"), email=form.get("email"))
        except ValidationError as e:
            raise ValidationFailedError(
                {
                    ".".join(str(p) for p in err["loc"]) or "form": err["msg"]
                    for err in e.errors()
                }
            )

        updated = await self.users.update_name_email(
            ObjectId(user_id),
            name=data.name,
            email=data.email,
        )
        if not updated:
            raise NotFoundError("The user belonging to this token no longer exists.")

        return AccountPage(user=UserPublic.model_validate(updated))
