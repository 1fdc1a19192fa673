"""
Prometheus metrics for monitoring
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram, generate_latest

# ==================== HTTP Metrics ====================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# ==================== Booking Metrics ====================

bookings_created_total = Counter(
    'bookings_created_total',
    'Total bookings created (pending)'
)

bookings_confirmed_total = Counter(
    'bookings_confirmed_total',
    'Total bookings confirmed after payment'
)

bookings_cancelled_total = Counter(
    'bookings_cancelled_total',
    'Total bookings cancelled by a user or admin'
)

bookings_failed_total = Counter(
    'bookings_failed_total',
    'Total bookings whose payment failed'
)

bookings_expired_total = Counter(
    'bookings_expired_total',
    'Total pending bookings released by the expiry sweep'
)

booking_creation_duration_seconds = Histogram(
    'booking_creation_duration_seconds',
    'Time to create a booking',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

# ==================== Seat Ledger Metrics ====================

seat_conflicts_total = Counter(
    'seat_conflicts_total',
    'Reservations rejected because a requested seat was already held'
)

capacity_exceeded_total = Counter(
    'capacity_exceeded_total',
    'Reservations rejected because the trip had too few seats left'
)

seats_released_total = Counter(
    'seats_released_total',
    'Seats returned to trips',
    ['reason']  # cancelled, failed, expired
)

# ==================== Expiry Sweep Metrics ====================

expiry_sweeps_total = Counter(
    'expiry_sweeps_total',
    'Expiry sweep runs'
)

expiry_sweep_failures_total = Counter(
    'expiry_sweep_failures_total',
    'Bookings the expiry sweep failed to release'
)

expiry_sweep_duration_seconds = Histogram(
    'expiry_sweep_duration_seconds',
    'Time to run one expiry sweep',
    buckets=[0.01, 0.1, 0.5, 1.0, 5.0, 30.0]
)

# ==================== Helper Functions ====================


def track_time(metric: Histogram):
    """Decorator to track execution time"""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                metric.observe(time.time() - start_time)
        return wrapper
    return decorator


def record_release_metrics(reason: str, seat_count: int):
    """Record a booking leaving the held states"""
    if reason == 'cancelled':
        bookings_cancelled_total.inc()
    elif reason == 'failed':
        bookings_failed_total.inc()
    elif reason == 'expired':
        bookings_expired_total.inc()
    seats_released_total.labels(reason=reason).inc(seat_count)


def get_metrics():
    """Get current metrics in Prometheus format"""
    return generate_latest()

