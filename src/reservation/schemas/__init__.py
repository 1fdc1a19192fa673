"""
Pydantic schemas for API request/response validation
"""
from reservation.schemas.trip import TripResponse, SeatMapResponse
from reservation.schemas.booking import (
    BookingCreate,
    PaymentStatusUpdate,
    BookingResponse,
    BookingListResponse,
    ReleaseSummaryResponse,
    BookingTimeoutResponse,
    BookingStatsResponse,
    SweepResultResponse,
)

__all__ = [
    # Trips
    "TripResponse",
    "SeatMapResponse",
    # Bookings
    "BookingCreate",
    "PaymentStatusUpdate",
    "BookingResponse",
    "BookingListResponse",
    "ReleaseSummaryResponse",
    "BookingTimeoutResponse",
    "BookingStatsResponse",
    "SweepResultResponse",
]
