"""
Rate limiting for reservation attempts using SlowAPI

Buckets are per acting user, so one client retrying after seat conflicts
cannot starve the trip lock for everyone else.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from reservation.api.deps import actor_from_request
from reservation.core.config import settings

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 60


def get_identifier(request: Request) -> str:
    """Bucket key: the acting user, or the client IP when no valid actor is named"""
    actor = actor_from_request(request)
    if actor is not None:
        return f"user:{actor.user_id}"

    return f"ip:{get_remote_address(request)}"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer 429 in the same error shape as the service errors"""
    logger.warning(
        f"⚠️ Rate limit exceeded for {get_identifier(request)} on {request.url.path}",
        extra={'user_id': request.query_params.get('user_id')},
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": {
                "error": "RateLimitExceeded",
                "message": f"Too many requests ({exc.detail}). Please slow down.",
            }
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


# Only routes decorated with limiter.limit are throttled
limiter = Limiter(
    key_func=get_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
