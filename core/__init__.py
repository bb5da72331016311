# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the page logic, independent of HTTP:
# - models/: Pydantic schemas for stored documents and page view models
# - services/: Collection reads and the page view assembly
#
# Code in this package should NOT build responses or render templates.
# Failures are raised as domain errors and turned into responses by app/.
# =============================================================================
