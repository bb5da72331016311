# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .booking_service import BookingService
from .tour_service import TourService
from .user_service import UserService
from .view_service import ViewService

__all__ = [
    "BookingService",
    "TourService",
    "UserService",
    "ViewService",
]
