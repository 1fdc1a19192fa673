"""
Booking model - one reservation attempt with a pending/completed/failed/cancelled lifecycle
"""
from datetime import datetime, timedelta
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from reservation.core.clock import utcnow
from reservation.core.database import Base


class BookingStatus(PyEnum):
    """Enum for booking payment status"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Statuses whose seat assignments still hold seats on the trip
HOLDING_STATUSES = (BookingStatus.PENDING, BookingStatus.COMPLETED)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    booking_reference = Column(String(32), nullable=False, unique=True)
    status = Column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    total_amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)  # transaction start
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    seats = relationship(
        "BookingSeat",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BookingSeat.seat_number",
    )

    def __repr__(self):
        return (f"<Booking(id={self.id}, ref='{self.booking_reference}', trip_id={self.trip_id}, "
                f"status='{self.status.value}', total={self.total_amount})>")

    @property
    def is_pending(self) -> bool:
        return self.status == BookingStatus.PENDING

    @property
    def seat_numbers(self) -> list:
        return [seat.seat_number for seat in self.seats]

    def expires_at(self, grace_period: timedelta) -> datetime:
        """When an unpaid booking becomes eligible for the expiry sweep"""
        return self.created_at + grace_period

    def is_stale(self, now: datetime, grace_period: timedelta) -> bool:
        """Pending and past its grace period"""
        return self.is_pending and now >= self.expires_at(grace_period)
