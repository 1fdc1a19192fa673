"""Admin API endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from reservation.api.deps import get_current_actor, http_error
from reservation.core.database import get_db
from reservation.schemas import BookingStatsResponse, SweepResultResponse
from reservation.services import Actor, BookingService, expiry_worker

router = APIRouter()


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"error": "Forbidden", "message": "Admin access required"},
        )
    return actor


@router.get("/admin/stats", response_model=BookingStatsResponse)
async def get_booking_stats(
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Booking counts per status, seats held and revenue of completed bookings"""
    try:
        stats = await BookingService.get_booking_stats(db=db)
    except Exception as e:
        raise http_error(e)

    return BookingStatsResponse(
        total=stats.total,
        by_status=stats.by_status,
        seats_held=stats.seats_held,
        revenue=stats.revenue,
    )


@router.post("/admin/expiry/sweep", response_model=SweepResultResponse)
async def run_expiry_sweep(actor: Actor = Depends(require_admin)):
    """Run one expiry sweep now instead of waiting for the next interval"""
    result = await expiry_worker.sweep_once()
    return SweepResultResponse.from_sweep(result)
