"""
BookingSeat model - seat assignment binding a booking to a seat number on its trip

Rows only exist while the owning booking holds its seats; every release
path deletes them. The (trip_id, seat_number) unique constraint backs up
the seat ledger's conflict check at the store level.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from reservation.core.clock import utcnow
from reservation.core.database import Base


class BookingSeat(Base):
    __tablename__ = "booking_seats"
    __table_args__ = (
        UniqueConstraint('trip_id', 'seat_number', name='uq_trip_seat_number'),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    booking = relationship("Booking", back_populates="seats")

    def __repr__(self):
        return f"<BookingSeat(id={self.id}, booking_id={self.booking_id}, trip_id={self.trip_id}, seat={self.seat_number})>"
