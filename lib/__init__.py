# =============================================================================
# lib/ - Shared Library Code
# =============================================================================
# This package contains utilities shared across the application:
# - mongo_client.py: Singleton MongoDB client
# - utils.py: Document helpers and concurrency utilities
# =============================================================================

from lib.mongo_client import MongoClient, MongoClientError
from lib.utils import gather_first_failure, resolve_defaults, to_object_id, to_str_id

__all__ = [
    "MongoClient",
    "MongoClientError",
    "gather_first_failure",
    "resolve_defaults",
    "to_object_id",
    "to_str_id",
]
