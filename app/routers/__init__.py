# =============================================================================
# app/routers/ - Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - views.py: Server-rendered pages (overview, tour, account, ...)
# - webhook.py: Payment checkout webhook (raw body hand-off)
# - health.py: Health check endpoints
#
# Each router is mounted in main.py.
# =============================================================================

from . import health
from . import views
from . import webhook

__all__ = [
    "health",
    "views",
    "webhook",
]
