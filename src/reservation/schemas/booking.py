"""Pydantic schemas for Booking resources"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, StrictInt

from reservation.models.booking import BookingStatus
from reservation.schemas.base import MAX_ID, CamelModel


class BookingCreate(CamelModel):
    trip_id: int = Field(..., gt=0, le=MAX_ID)
    seat_numbers: List[StrictInt]
    total_amount: Decimal = Field(..., gt=0)


class PaymentStatusUpdate(CamelModel):
    payment_status: BookingStatus


class BookingResponse(CamelModel):
    id: int
    booking_reference: str
    user_id: str
    trip_id: int
    payment_status: BookingStatus
    total_amount: Decimal
    seat_numbers: List[int] = Field(default_factory=list)
    created_at: datetime
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking, grace_period: timedelta):
        """Convert Booking ORM model to response"""
        return cls(
            id=booking.id,
            booking_reference=booking.booking_reference,
            user_id=booking.user_id,
            trip_id=booking.trip_id,
            payment_status=booking.status,
            total_amount=booking.total_amount,
            seat_numbers=booking.seat_numbers,
            created_at=booking.created_at,
            expires_at=booking.expires_at(grace_period) if booking.is_pending else None,
            completed_at=booking.completed_at,
            cancelled_at=booking.cancelled_at,
        )


class BookingListResponse(CamelModel):
    bookings: List[BookingResponse]
    total: int


class ReleaseSummaryResponse(CamelModel):
    booking_id: int
    booking_reference: str
    trip_id: int
    payment_status: BookingStatus
    seats_released: int
    seat_numbers: List[int]
    available_seats: int

    @classmethod
    def from_summary(cls, summary):
        return cls(
            booking_id=summary.booking_id,
            booking_reference=summary.booking_reference,
            trip_id=summary.trip_id,
            payment_status=summary.status,
            seats_released=summary.seats_released,
            seat_numbers=summary.seat_numbers,
            available_seats=summary.available_seats,
        )


class BookingTimeoutResponse(CamelModel):
    booking_id: int
    payment_status: BookingStatus
    created_at: datetime
    expires_at: datetime
    time_remaining: int  # seconds
    expired: bool

    @classmethod
    def from_timeout(cls, timeout):
        return cls(
            booking_id=timeout.booking_id,
            payment_status=timeout.status,
            created_at=timeout.created_at,
            expires_at=timeout.expires_at,
            time_remaining=timeout.time_remaining_seconds,
            expired=timeout.expired,
        )


class BookingStatsResponse(CamelModel):
    total: int
    by_status: Dict[str, int]
    seats_held: int
    revenue: Decimal


class SweepResultResponse(CamelModel):
    expired_booking_ids: List[int]
    failed_booking_ids: List[int]
    skipped_booking_ids: List[int]
    seats_released: int

    @classmethod
    def from_sweep(cls, sweep):
        return cls(
            expired_booking_ids=sweep.expired_booking_ids,
            failed_booking_ids=sweep.failed_booking_ids,
            skipped_booking_ids=sweep.skipped_booking_ids,
            seats_released=sweep.seats_released,
        )
