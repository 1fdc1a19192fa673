"""
Request tracing middleware
"""
import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from reservation.core import metrics
from reservation.core.logging_config import set_trace_id, generate_trace_id

logger = logging.getLogger(__name__)


class TracingMiddleware(BaseHTTPMiddleware):
    """Middleware to add trace ID to all requests and record HTTP metrics"""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get('X-Trace-ID') or generate_trace_id()
        set_trace_id(trace_id)

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={'duration_ms': round(duration_ms, 2)},
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        route = request.scope.get('route')
        endpoint = getattr(route, 'path', request.url.path)  # template, keeps label cardinality low

        metrics.http_requests_total.labels(
            method=request.method, endpoint=endpoint, status=response.status_code
        ).inc()
        metrics.http_request_duration_seconds.labels(
            method=request.method, endpoint=endpoint
        ).observe(duration)

        logger.info(
            f"Request completed: {request.method} {request.url.path} -> {response.status_code}",
            extra={'duration_ms': round(duration * 1000, 2)},
        )

        response.headers['X-Trace-ID'] = trace_id
        return response
