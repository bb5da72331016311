# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# This package contains the web application:
# - main.py: App factory, error handlers, router mounting
# - server.py: Process bootstrap (listener, shutdown policy)
# - config.py: Environment variable loading and settings
# - middleware/: The ordered request pipeline
# - routers/: Page routes, checkout webhook, health checks
# - templates/: Jinja2 page templates
#
# The app layer is thin - it handles HTTP concerns and delegates
# page assembly to the core/ package.
# =============================================================================
