"""Bookings API endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reservation.api.deps import get_current_actor, http_error
from reservation.core.clock import Clock, get_clock
from reservation.core.config import settings
from reservation.core.database import get_db
from reservation.middleware.rate_limiter import limiter
from reservation.models.booking import BookingStatus
from reservation.schemas import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingTimeoutResponse,
    PaymentStatusUpdate,
    ReleaseSummaryResponse,
)
from reservation.schemas.base import MAX_ID
from reservation.services import Actor, BookingAccessDeniedError, BookingService, ReleaseSummary
from reservation.services.booking_service import default_grace_period

router = APIRouter()


@router.post("/bookings", response_model=BookingResponse, status_code=201)
@limiter.limit(settings.BOOKING_RATE_LIMIT)
async def create_booking(
    request: Request,
    booking_data: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new booking with PENDING status

    The seats stay held for the grace period while payment is pending.
    A SeatConflict answer lists the contested seat numbers so the client
    can pick others; nothing is retried server-side.
    """
    try:
        booking = await BookingService.create_booking(
            db=db,
            user_id=actor.user_id,
            trip_id=booking_data.trip_id,
            seat_numbers=booking_data.seat_numbers,
            expected_amount=booking_data.total_amount,
            clock=clock,
        )
    except Exception as e:
        raise http_error(e)

    return BookingResponse.from_booking(booking, default_grace_period())


@router.get("/bookings", response_model=BookingListResponse)
async def list_user_bookings(
    actor: Actor = Depends(get_current_actor),
    status: Optional[BookingStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List all bookings for the current user"""
    try:
        bookings = await BookingService.list_user_bookings(
            db=db,
            user_id=actor.user_id,
            status=status,
        )
    except Exception as e:
        raise http_error(e)

    grace_period = default_grace_period()
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(b, grace_period) for b in bookings],
        total=len(bookings),
    )


@router.get("/bookings/reference/{reference}", response_model=BookingResponse)
async def get_booking_by_reference(
    reference: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Look a booking up by its printed reference"""
    try:
        booking = await BookingService.get_booking_by_reference(db=db, reference=reference)
        if not actor.can_manage(booking):
            raise BookingAccessDeniedError(booking.id)
    except Exception as e:
        raise http_error(e)

    return BookingResponse.from_booking(booking, default_grace_period())


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int = Path(..., gt=0, le=MAX_ID),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific booking by ID"""
    try:
        booking = await BookingService.get_booking(db=db, booking_id=booking_id, actor=actor)
    except Exception as e:
        raise http_error(e)

    return BookingResponse.from_booking(booking, default_grace_period())


@router.get("/bookings/{booking_id}/timeout", response_model=BookingTimeoutResponse)
async def get_booking_timeout(
    booking_id: int = Path(..., gt=0, le=MAX_ID),
    actor: Actor = Depends(get_current_actor),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Time left before an unpaid booking is released. Read-only."""
    try:
        timeout = await BookingService.get_booking_timeout(
            db=db,
            booking_id=booking_id,
            actor=actor,
            clock=clock,
        )
    except Exception as e:
        raise http_error(e)

    return BookingTimeoutResponse.from_timeout(timeout)


@router.patch("/bookings/{booking_id}/payment")
async def update_payment_status(
    payment_data: PaymentStatusUpdate,
    booking_id: int = Path(..., gt=0, le=MAX_ID),
    actor: Actor = Depends(get_current_actor),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Record the payment outcome for a PENDING booking

    completed keeps the seats; failed releases them.
    """
    try:
        result = await BookingService.update_payment_status(
            db=db,
            booking_id=booking_id,
            payment_status=payment_data.payment_status,
            actor=actor,
            clock=clock,
        )
    except Exception as e:
        raise http_error(e)

    if isinstance(result, ReleaseSummary):
        return ReleaseSummaryResponse.from_summary(result).model_dump(mode="json", by_alias=True)
    return BookingResponse.from_booking(result, default_grace_period()).model_dump(mode="json", by_alias=True)


@router.patch("/bookings/{booking_id}/cancel", response_model=ReleaseSummaryResponse)
async def cancel_booking(
    booking_id: int = Path(..., gt=0, le=MAX_ID),
    actor: Actor = Depends(get_current_actor),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a PENDING booking and release its seats"""
    try:
        summary = await BookingService.cancel_booking(
            db=db,
            booking_id=booking_id,
            actor=actor,
            clock=clock,
        )
    except Exception as e:
        raise http_error(e)

    return ReleaseSummaryResponse.from_summary(summary)
