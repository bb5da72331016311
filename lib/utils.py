# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import asyncio
from typing import Any, Awaitable

from bson import ObjectId
from bson.errors import InvalidId


# =============================================================================
# Document Utilities
# =============================================================================

def to_str_id(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Copy a Mongo document with its `_id` exposed as a string `id`.

    Args:
        doc: Document as returned by the driver (may be None)

    Returns:
        New dict with `id` set and `_id` stringified, or the input if empty

    Example:
        to_str_id({"_id": ObjectId("5c88fa8cf4afda39709c2955"), "name": "Forest Hiker"})
        # {"_id": "5c88...", "id": "5c88...", "name": "Forest Hiker"}
    """
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["_id"] = str(d["_id"])
        d["id"] = d["_id"]
    return d


def to_object_id(value: str | ObjectId | None) -> ObjectId | None:
    """
    Convert a string to an ObjectId.

    Returns None when the value is not a valid 24-character hex id.
    """
    if isinstance(value, ObjectId):
        return value
    # ObjectId(None) would mint a fresh id
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def resolve_defaults(record: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    """
    Fill missing (None) fields of a record from a defaults table.

    Callable defaults are invoked per record, so time-based defaults are
    computed when the record is built.

    Example:
        resolve_defaults({"rating": None}, {"rating": 0})  # {"rating": 0}
    """
    resolved = dict(record)
    for key, default in defaults.items():
        if resolved.get(key) is None:
            resolved[key] = default() if callable(default) else default
    return resolved


# =============================================================================
# Concurrency Utilities
# =============================================================================

async def gather_first_failure(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently and return their results in order.

    The first failure wins: remaining tasks are cancelled and the error
    propagates to the caller, so no partial result is ever returned.

    Example:
        featured, everything = await gather_first_failure(read_a(), read_b())
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    failed = [task for task in tasks if task in done and not task.cancelled() and task.exception()]
    if failed:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise failed[0].exception()

    return [task.result() for task in tasks]
