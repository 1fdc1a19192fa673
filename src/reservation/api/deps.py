"""Shared API dependencies and error translation"""
import logging
from typing import Optional

from fastapi import HTTPException, Query, Request

from reservation.services import Actor, ReservationError

logger = logging.getLogger(__name__)

INTERNAL_ERROR = {"error": "StorageError", "message": "Internal server error"}

USER_ID_MAX_LENGTH = 64
TRUTHY = {"1", "true", "yes", "on"}


async def get_current_actor(
    user_id: str = Query(..., min_length=1, max_length=USER_ID_MAX_LENGTH, description="Acting user id"),
    is_admin: bool = Query(False, description="Acting user is an admin"),
) -> Actor:
    return Actor(user_id=user_id, is_admin=is_admin)


def actor_from_request(request: Request) -> Optional[Actor]:
    """Actor named by the query string, or None when get_current_actor would reject it"""
    user_id = request.query_params.get("user_id", "")
    if not 1 <= len(user_id) <= USER_ID_MAX_LENGTH:
        return None
    is_admin = request.query_params.get("is_admin", "").lower() in TRUTHY
    return Actor(user_id=user_id, is_admin=is_admin)


def http_error(error: Exception) -> HTTPException:
    """Translate a service error into the HTTP answer"""
    if isinstance(error, ReservationError):
        return HTTPException(status_code=error.status_code, detail=error.to_dict())
    logger.error(f"❌ Unexpected error: {error}", exc_info=error)
    return HTTPException(status_code=500, detail=INTERNAL_ERROR)
