# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas:
# - tour.py: Tour document and its populated relations
# - user.py: Public user projection and the account form
# - views.py: Page view models handed to the templates
#
# These models define the "contract" between services and templates.
# =============================================================================

# -----------------------------------------------------------------------------
# Tour Models
# -----------------------------------------------------------------------------
from .tour import (
    Difficulty,
    Guide,
    ReviewAuthor,
    StartLocation,
    TourDetail,
    TourReview,
)

# -----------------------------------------------------------------------------
# User Models
# -----------------------------------------------------------------------------
from .user import (
    UserDataUpdate,
    UserPublic,
)

# -----------------------------------------------------------------------------
# Page Models
# -----------------------------------------------------------------------------
from .views import (
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

__all__ = [
    # Tour
    "Difficulty",
    "Guide",
    "ReviewAuthor",
    "StartLocation",
    "TourDetail",
    "TourReview",
    # User
    "UserDataUpdate",
    "UserPublic",
    # Pages
    "AccountPage",
    "Destination",
    "DestinationsPage",
    "MyToursPage",
    "OverviewPage",
    "StoriesPage",
    "StoryCategory",
    "TourPage",
    "TravelStory",
]
