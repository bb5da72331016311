# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Natours web application:
# - test_models.py: Pydantic model validation
# - test_services.py: Collection reads (driver mocked)
# - test_view_service.py: Page view assembly
# - test_rate_limit.py: Rate limiter and its stores
# - test_pipeline.py: Request pipeline stages, end to end
# - test_routes.py: Page routes, auth gates, error pages
# - test_server.py: Process bootstrap shutdown policy
#
# Run tests with: pytest
# =============================================================================
