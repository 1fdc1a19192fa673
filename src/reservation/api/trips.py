"""Trips API endpoints"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from reservation.api.deps import http_error
from reservation.core.database import get_db
from reservation.schemas import SeatMapResponse, TripResponse
from reservation.schemas.base import MAX_ID
from reservation.services import TripService

router = APIRouter()


@router.get("/trips/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., gt=0, le=MAX_ID),
    db: AsyncSession = Depends(get_db),
):
    """Get trip details with the current available seat count"""
    try:
        trip = await TripService.get_trip(db=db, trip_id=trip_id)
    except Exception as e:
        raise http_error(e)

    return TripResponse.model_validate(trip)


@router.get("/trips/{trip_id}/seats", response_model=SeatMapResponse)
async def get_seat_map(
    trip_id: int = Path(..., gt=0, le=MAX_ID),
    db: AsyncSession = Depends(get_db),
):
    """
    Seat map for a trip

    Lists held and free seat numbers so a client that got a SeatConflict
    can choose again.
    """
    try:
        seat_map = await TripService.get_seat_map(db=db, trip_id=trip_id)
    except Exception as e:
        raise http_error(e)

    return SeatMapResponse.from_seat_map(seat_map)
